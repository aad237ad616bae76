from __future__ import annotations

from pathlib import Path
import logging
import struct
import tempfile

from ..subprocess_utils import run_checked

logger = logging.getLogger(__name__)

VERSION_CHECK_CLASS_NAME = "VersionCheck"

_CLASS_FILE_MAGIC = 0xCAFEBABE
_CLASS_FILE_MAJOR = 49

_UTF8 = 1
_CLASS = 7
_STRING = 8
_FIELDREF = 9
_METHODREF = 10
_NAME_AND_TYPE = 12

_ACC_PUBLIC = 0x0001
_ACC_STATIC = 0x0008
_ACC_SUPER = 0x0020


def _utf8(text: str) -> bytes:
    data = text.encode("ascii")
    return struct.pack(">BH", _UTF8, len(data)) + data


def _ref(tag: int, *indexes: int) -> bytes:
    return struct.pack(">B" + "H" * len(indexes), tag, *indexes)


def build_version_check_class() -> bytes:
    """Assemble ``VersionCheck.class``.

    The class has a single ``main`` that prints
    ``System.getProperty("java.version")`` without a trailing newline.
    """
    constant_pool = [
        _utf8(VERSION_CHECK_CLASS_NAME),  # 1
        _ref(_CLASS, 1),  # 2
        _utf8("java/lang/Object"),  # 3
        _ref(_CLASS, 3),  # 4
        _utf8("java/lang/System"),  # 5
        _ref(_CLASS, 5),  # 6
        _utf8("out"),  # 7
        _utf8("Ljava/io/PrintStream;"),  # 8
        _ref(_NAME_AND_TYPE, 7, 8),  # 9
        _ref(_FIELDREF, 6, 9),  # 10
        _utf8("java.version"),  # 11
        _ref(_STRING, 11),  # 12
        _utf8("getProperty"),  # 13
        _utf8("(Ljava/lang/String;)Ljava/lang/String;"),  # 14
        _ref(_NAME_AND_TYPE, 13, 14),  # 15
        _ref(_METHODREF, 6, 15),  # 16
        _utf8("java/io/PrintStream"),  # 17
        _ref(_CLASS, 17),  # 18
        _utf8("print"),  # 19
        _utf8("(Ljava/lang/String;)V"),  # 20
        _ref(_NAME_AND_TYPE, 19, 20),  # 21
        _ref(_METHODREF, 18, 21),  # 22
        _utf8("main"),  # 23
        _utf8("([Ljava/lang/String;)V"),  # 24
        _utf8("Code"),  # 25
    ]

    code = bytes(
        [
            0xB2, 0x00, 0x0A,  # getstatic System.out
            0x12, 0x0C,  # ldc "java.version"
            0xB8, 0x00, 0x10,  # invokestatic System.getProperty
            0xB6, 0x00, 0x16,  # invokevirtual PrintStream.print
            0xB1,  # return
        ]
    )
    code_body = (
        struct.pack(">HHI", 2, 1, len(code))
        + code
        + struct.pack(">HH", 0, 0)  # no exception table, no attributes
    )
    code_attribute = struct.pack(">HI", 25, len(code_body)) + code_body
    main_method = struct.pack(">HHHH", _ACC_PUBLIC | _ACC_STATIC, 23, 24, 1) + code_attribute

    return b"".join(
        [
            struct.pack(">IHHH", _CLASS_FILE_MAGIC, 0, _CLASS_FILE_MAJOR, len(constant_pool) + 1),
            *constant_pool,
            struct.pack(">HHHH", _ACC_PUBLIC | _ACC_SUPER, 2, 4, 0),
            struct.pack(">HH", 0, 1),  # fields, methods
            main_method,
            struct.pack(">H", 0),  # class attributes
        ]
    )


class VersionProbe:
    """Runs candidate Java executables on ``VersionCheck`` to read ``java.version``.

    The class file lives in a scratch directory that is created on first use
    and removed by :meth:`close` (or on leaving the ``with`` block).
    """

    def __init__(self) -> None:
        self._scratch: tempfile.TemporaryDirectory[str] | None = None

    def __enter__(self) -> VersionProbe:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_initialized(self) -> bool:
        return self._scratch is not None

    def close(self) -> None:
        if self._scratch is not None:
            self._scratch.cleanup()
            self._scratch = None

    def _scratch_dir(self) -> Path:
        if self._scratch is None:
            self._scratch = tempfile.TemporaryDirectory(prefix="mcprovision-java-")
            class_file = Path(self._scratch.name) / f"{VERSION_CHECK_CLASS_NAME}.class"
            class_file.write_bytes(build_version_check_class())
            logger.debug("Wrote %s", class_file)
        return Path(self._scratch.name)

    def java_version(self, java_path: Path) -> str:
        scratch = self._scratch_dir()
        process = run_checked(
            [str(java_path), "-cp", ".", VERSION_CHECK_CLASS_NAME],
            cwd=scratch,
        )
        return process.stdout.strip()
