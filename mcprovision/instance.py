from __future__ import annotations

from pathlib import Path
import json
import logging

from .exceptions import InstanceMetadataError
from .models import InstanceMetadata

logger = logging.getLogger(__name__)

INSTANCE_METADATA_FILE = ".mcprovision_metadata.json"


def metadata_path(instance_dir: Path) -> Path:
    return instance_dir / INSTANCE_METADATA_FILE


def load_instance_metadata(instance_dir: Path) -> InstanceMetadata:
    path = metadata_path(instance_dir)
    if not path.exists():
        raise InstanceMetadataError(f"No instance metadata found at {path}.")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return InstanceMetadata.from_dict(data)
    except (OSError, KeyError, TypeError, ValueError) as exc:
        raise InstanceMetadataError(f"Invalid instance metadata at {path}: {exc}") from exc


def save_instance_metadata(instance_dir: Path, metadata: InstanceMetadata) -> Path:
    path = metadata_path(instance_dir)
    path.write_text(json.dumps(metadata.to_dict(), indent=2), encoding="utf-8")
    logger.debug("Saved %s", path)
    return path
