from pathlib import Path

from mcprovision import cli
from mcprovision.exceptions import DownloadError, InstallError
from mcprovision.http import HttpClient
from mcprovision.instance import save_instance_metadata
from mcprovision.java import JavaCandidate, ParsedJavaVersion
from mcprovision.models import InstanceMetadata


def test_default_cache_dir_prefers_environment_override(tmp_path):
    assert cli.default_cache_dir({"MCPROVISION_CACHE_DIR": str(tmp_path)}) == tmp_path


def test_default_cache_dir_falls_back_to_user_cache(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "IS_WINDOWS", False)
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    assert cli.default_cache_dir({}) == tmp_path / ".cache" / "mcprovision"


def test_format_error_chain_lists_causes():
    try:
        try:
            raise DownloadError("Request failed for https://example.com")
        except DownloadError as exc:
            raise InstallError("downloading server jar") from exc
    except InstallError as exc:
        lines = cli.format_error_chain(exc)

    assert lines == [
        "mcprovision error: downloading server jar",
        "caused by: Request failed for https://example.com",
    ]


def test_prompt_selector_defaults_to_first_item(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda: "")
    assert cli.prompt_selector(["a", "b"], "pick one") == "a"


def test_prompt_selector_retries_invalid_choice(monkeypatch, capsys):
    answers = iter(["9", "x", "2"])
    monkeypatch.setattr("builtins.input", lambda: next(answers))

    assert cli.prompt_selector(["a", "b"], "pick one") == "b"
    assert "invalid choice '9'" in capsys.readouterr().err


def test_prompt_selector_zero_cancels(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda: "0")
    assert cli.prompt_selector(["a", "b"], "pick one") is None


def test_prompt_eula_accepts_yes(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda: "Yes")
    assert cli.prompt_eula()
    monkeypatch.setattr("builtins.input", lambda: "")
    assert not cli.prompt_eula()


def test_parser_reads_add_options():
    args = cli.build_parser().parse_args(["add", "sodium", "-i", "servers/one", "-s", "-p", "modrinth"])

    assert (args.command, args.name, args.instance, args.search, args.provider) == (
        "add",
        "sodium",
        "servers/one",
        True,
        "modrinth",
    )


def test_parser_new_defaults():
    args = cli.build_parser().parse_args(["-v", "new", "survival", "-m", "1.20.1"])

    assert args.verbose
    assert (args.name, args.version, args.loader, args.eula) == ("survival", "1.20.1", "vanilla", False)


def test_main_java_lists_candidates(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda verbose: None)
    candidate = JavaCandidate(Path("/jvm/17/bin/java"), ParsedJavaVersion.parse("17.0.8"))
    monkeypatch.setattr(cli.ServerManager, "find_java", lambda self: [candidate])

    assert cli.main(["--cache-dir", str(tmp_path), "java"]) == 0
    assert capsys.readouterr().out.strip() == str(candidate)


def test_main_prints_error_chain(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda verbose: None)

    def _fail(self, request):
        raise InstallError("an instance with that name already exists")

    monkeypatch.setattr(cli.ServerManager, "new_instance", _fail)

    assert cli.main(["--cache-dir", str(tmp_path), "new", "survival"]) == 1
    assert "mcprovision error: an instance with that name already exists" in capsys.readouterr().err


def test_parser_new_long_version_flag():
    args = cli.build_parser().parse_args(["new", "survival", "--version", "1.19.4"])

    assert not args.verbose
    assert args.version == "1.19.4"


def test_main_add_reports_malformed_remote_hash(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda verbose: None)
    api = "https://api.modrinth.com/v2/project/sodium"
    documents = {
        api: {"id": "AANobbMI", "slug": "sodium", "title": "Sodium", "game_versions": ["1.20.1"]},
        f"{api}/members": [],
        f"{api}/version": [
            {
                "name": "0.5",
                "date_published": "2023-06-01T00:00:00Z",
                "files": [
                    {
                        "url": "https://cdn.modrinth.com/sodium-0.5.jar",
                        "filename": "sodium-0.5.jar",
                        "hashes": {"sha512": "abc"},
                    }
                ],
            }
        ],
    }
    monkeypatch.setattr(HttpClient, "get_json", lambda self, url, params=None: documents[url])
    monkeypatch.setattr(HttpClient, "get_json_or_none", lambda self, url, params=None: documents.get(url))
    instance_dir = tmp_path / "survival"
    instance_dir.mkdir()
    save_instance_metadata(instance_dir, InstanceMetadata(loader="fabric", minecraft_version="1.20.1"))

    code = cli.main(["--cache-dir", str(tmp_path / "cache"), "add", "sodium", "-i", str(instance_dir)])

    assert code == 1
    err = capsys.readouterr().err
    assert "mcprovision error: Invalid response from" in err
    assert "caused by:" in err
    assert not (instance_dir / "mods").exists()
