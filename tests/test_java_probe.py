import subprocess

from mcprovision.java import probe as probe_module
from mcprovision.java.probe import VersionProbe, build_version_check_class


def test_version_check_class_header():
    data = build_version_check_class()
    assert data[:4] == bytes.fromhex("cafebabe")
    assert int.from_bytes(data[6:8], "big") == 49
    assert b"java.version" in data
    assert b"VersionCheck" in data


def test_probe_creates_scratch_dir_lazily_and_cleans_up(monkeypatch, tmp_path):
    calls = []

    def _fake_run(command, cwd, capture_output=True):
        calls.append((command, cwd))
        assert (cwd / "VersionCheck.class").exists()
        return subprocess.CompletedProcess(command, 0, stdout="17.0.8\n", stderr="")

    monkeypatch.setattr(probe_module, "run_checked", _fake_run)

    with VersionProbe() as probe:
        assert not probe.is_initialized
        assert probe.java_version(tmp_path / "java") == "17.0.8"
        assert probe.java_version(tmp_path / "java") == "17.0.8"
        scratch = calls[0][1]
        assert probe.is_initialized

    assert calls[0][0] == [str(tmp_path / "java"), "-cp", ".", "VersionCheck"]
    assert calls[0][1] == calls[1][1]
    assert not scratch.exists()
