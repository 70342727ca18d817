import json

import pytest

from httprun.httprun_cli import build_arg_parser, main


@pytest.fixture
def http_file(tmp_path):
    path = tmp_path / "api.http"
    path.write_text(
        "### first\nGET {{host}}/one\n\n###\nPOST https://{{host}}/two\nContent-Type: text/plain\n\nhello\n",
        encoding="utf-8",
    )
    (tmp_path / "http-client.env.json").write_text(
        json.dumps({"dev": {"host": "dev.example"}, "prod": {"host": "prod.example"}}),
        encoding="utf-8",
    )
    return path


def test_arg_defaults():
    args = build_arg_parser().parse_args(["x.http"])
    assert args.env is None
    assert args.env_file == "http-client.env.json"
    assert args.timeout == 30.0
    assert not args.dry_run


def test_dry_run_uses_environment_next_to_file(http_file, capsys):
    with pytest.raises(SystemExit) as info:
        main([str(http_file), "--env", "dev", "--dry-run"])
    assert info.value.code == 0
    out = capsys.readouterr().out
    assert "Dry run: 2 request(s)" in out
    assert "GET https://dev.example/one" in out
    assert "POST https://dev.example/two" in out


def test_index_out_of_range_is_rejected(http_file, capsys):
    with pytest.raises(SystemExit) as info:
        main([str(http_file), "--index", "5", "--dry-run"])
    assert info.value.code == 1
    assert "Index 5 out of range (1-2)" in capsys.readouterr().err


def test_unknown_environment_is_an_error(http_file, capsys):
    with pytest.raises(SystemExit) as info:
        main([str(http_file), "--env", "staging", "--dry-run"])
    assert info.value.code == 1
    assert "staging" in capsys.readouterr().err


def test_list_envs(http_file, capsys):
    with pytest.raises(SystemExit) as info:
        main([str(http_file), "--list-envs"])
    assert info.value.code == 0
    assert capsys.readouterr().out.split() == ["dev", "prod"]


def test_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main([str(tmp_path / "missing.http")])
    assert info.value.code == 1
    assert "missing.http" in capsys.readouterr().err


def test_file_without_requests(tmp_path, capsys):
    path = tmp_path / "empty.http"
    path.write_text("// nothing here\n", encoding="utf-8")
    with pytest.raises(SystemExit) as info:
        main([str(path)])
    assert info.value.code == 0
    assert "No requests found in file" in capsys.readouterr().err


def test_name_filter_without_match(http_file, capsys):
    with pytest.raises(SystemExit) as info:
        main([str(http_file), "--name", "zzz", "--dry-run"])
    assert info.value.code == 0
    assert "No matching requests found" in capsys.readouterr().err


def test_file_that_is_not_utf8(tmp_path, capsys):
    path = tmp_path / "latin1.http"
    path.write_bytes(b"GET http://h/\xff\n")
    with pytest.raises(SystemExit) as info:
        main([str(path), "--dry-run"])
    assert info.value.code == 1
    err = capsys.readouterr().err
    assert "ERROR" in err
    assert "latin1.http" in err
