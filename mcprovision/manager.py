from __future__ import annotations

from pathlib import Path
from typing import Callable
import logging

from .exceptions import (
    IncompatibleJava,
    InstallError,
    InstanceMetadataError,
    ProviderUnsupportedError,
)
from .http import HttpClient
from .instance import load_instance_metadata, save_instance_metadata
from .java.locator import JavaCandidate, create_java_candidate_for_path, find_java_candidates
from .java.probe import VersionProbe
from .java.selection import select_java, warn_if_newer
from .loaders import ModLoader, create_loader_registry
from .minecraft import ManifestVersion, Version, fetch_manifest, fetch_version
from .mod_providers import ModProvider, create_mod_provider_registry
from .models import (
    AddModArgs,
    AddModRequest,
    AddModResult,
    InstanceMetadata,
    NewInstanceRequest,
    NewInstanceResult,
    ServerInstallArgs,
)
from .utils import IS_WINDOWS, RESOURCES_DIR, copy_directory

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_TEMPLATE = "default-config-template"
DEFAULT_SERVER_PROPERTIES = RESOURCES_DIR / "default-server.properties"

JavaFinder = Callable[[VersionProbe], "list[JavaCandidate]"]


def _find_java(probe: VersionProbe) -> list[JavaCandidate]:
    return find_java_candidates(probe)


class ServerManager:
    def __init__(
        self,
        cache_dir: Path,
        http_client: HttpClient | None = None,
        java_finder: JavaFinder = _find_java,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.http_client = http_client or HttpClient()
        self._java_finder = java_finder
        self._loaders = create_loader_registry()
        self._mod_providers = create_mod_provider_registry()

    @property
    def supported_loaders(self) -> tuple[str, ...]:
        return tuple(sorted(self._loaders.keys()))

    @property
    def supported_mod_providers(self) -> tuple[str, ...]:
        return tuple(sorted(self._mod_providers.keys()))

    def _loader(self, loader_id: str) -> ModLoader:
        key = loader_id.strip().lower()
        if key not in self._loaders:
            raise InstallError(
                f"Unsupported loader '{loader_id}'. Supported: {', '.join(self.supported_loaders)}."
            )
        return self._loaders[key]

    def _mod_provider(self, provider_id: str) -> ModProvider:
        key = provider_id.strip().lower()
        if key not in self._mod_providers:
            raise ProviderUnsupportedError(
                f"Unsupported mod provider '{provider_id}'. "
                f"Supported: {', '.join(self.supported_mod_providers)}."
            )
        return self._mod_providers[key]

    @staticmethod
    def required_java_version(
        loader: ModLoader, manifest_version: ManifestVersion, full_version: Version
    ) -> tuple[int, str]:
        """The Java major a new instance needs, and what imposes it."""
        loader_minimum = loader.minimum_java_version(manifest_version, full_version)
        if loader_minimum > full_version.java_major_version:
            return loader_minimum, f"loader {loader}"
        return full_version.java_major_version, f"minecraft {manifest_version.id}"

    def find_java(self) -> list[JavaCandidate]:
        with VersionProbe() as probe:
            return self._java_finder(probe)

    def _choose_java(
        self, request: NewInstanceRequest, required: int, reason: str
    ) -> JavaCandidate:
        with VersionProbe() as probe:
            if request.java_path is not None:
                candidate = create_java_candidate_for_path(Path(request.java_path), probe)
                if not request.skip_java_check:
                    if candidate.version.major < required:
                        raise IncompatibleJava(
                            f"specified java is not compatible with {reason}, "
                            f"need at least java {required}"
                        )
                    warn_if_newer(candidate, required)
                return candidate

            logger.info("searching for java versions")
            candidates = self._java_finder(probe)
        return select_java(
            candidates,
            required,
            request.selector,
            skip_check=request.skip_java_check,
            reason=reason,
        )

    def _apply_config_template(self, template: Path | None, instance_dir: Path) -> None:
        default_template = self.cache_dir / DEFAULT_CONFIG_TEMPLATE
        template = Path(template) if template is not None else default_template
        if template == default_template and not template.exists():
            properties = DEFAULT_SERVER_PROPERTIES.read_text(encoding="utf-8")
            if not IS_WINDOWS:
                # sync-chunk-writes is very slow on unix filesystems
                properties = "sync-chunk-writes=false\n" + properties
            template.mkdir(parents=True)
            (template / "server.properties").write_text(properties, encoding="utf-8")
        try:
            copy_directory(template, instance_dir)
        except OSError as exc:
            raise InstallError(f"copying from {template} to {instance_dir}") from exc

    def new_instance(self, request: NewInstanceRequest) -> NewInstanceResult:
        instance_dir = Path(request.name)
        if instance_dir.exists():
            raise InstallError("an instance with that name already exists")
        loader = self._loader(request.loader)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        manifest = fetch_manifest(self.http_client, self.cache_dir)
        version_name = request.version or manifest.latest_release
        manifest_version = manifest.find(version_name)
        full_version = fetch_version(self.http_client, self.cache_dir, manifest_version)

        required, reason = self.required_java_version(loader, manifest_version, full_version)
        java = self._choose_java(request, required, reason)
        logger.info("using java %s", java)

        loader.install(
            ServerInstallArgs(
                http_client=self.http_client,
                cache_dir=self.cache_dir,
                instance_dir=instance_dir,
                version_name=version_name,
                manifest_version=manifest_version,
                full_version=full_version,
                java_candidate=java,
                eula=request.eula,
                paper_build=request.paper_build,
                fabric_loader_version=request.fabric_loader_version,
                eula_prompt=request.eula_prompt,
                progress=request.progress,
            )
        )
        self._apply_config_template(request.config_template, instance_dir)

        metadata = InstanceMetadata(loader=loader.loader_id, minecraft_version=version_name)
        save_instance_metadata(instance_dir, metadata)
        return NewInstanceResult(instance_dir=instance_dir, metadata=metadata, java=java)

    def add_mod(self, request: AddModRequest) -> AddModResult:
        instance_dir = Path(request.instance_dir)
        metadata = load_instance_metadata(instance_dir)
        loader = self._loaders.get(metadata.loader)
        if loader is None:
            raise InstanceMetadataError(f"unknown loader '{metadata.loader}' in instance metadata")

        provider_id = request.provider or loader.default_mod_provider
        if provider_id is None:
            raise ProviderUnsupportedError(f"cannot install mods on loader '{metadata.loader}'")
        provider = self._mod_provider(provider_id)

        result = provider.add_mod(
            AddModArgs(
                http_client=self.http_client,
                cache_dir=self.cache_dir,
                instance_dir=instance_dir,
                instance_metadata=metadata,
                name=request.name,
                mods_folder=loader.mods_folder,
                force_search=request.force_search,
                skip_version_check=request.skip_version_check,
                selector=request.selector,
                progress=request.progress,
            )
        )
        if not result.up_to_date:
            metadata.put_mod(result.mod)
            save_instance_metadata(instance_dir, metadata)
        return result
