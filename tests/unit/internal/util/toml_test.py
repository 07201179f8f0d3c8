import builtins
import io

import pytest
import tomli
import tomli_w

import fixture_builder.internal.util.toml as toml_mod

# --------------------------------------------------------------------------
# C000F001: load_toml_file
# --------------------------------------------------------------------------


def test_load_toml_file_reads_settings_document(tmp_path):
    # C000F001B0001
    file_path = tmp_path / "fixture-builder.toml"
    file_path.write_bytes(b'constructor_cache_level = "global"\nmax_depth = 10\n')

    assert toml_mod.load_toml_file(file_path) == {"constructor_cache_level": "global", "max_depth": 10}


@pytest.mark.parametrize(
    "exception_type",
    [
        pytest.param(FileNotFoundError, id="missing"),  # C000F001B0002
        pytest.param(PermissionError, id="unreadable"),  # C000F001B0003
    ],
)
def test_load_toml_file_propagates_open_errors(monkeypatch, exception_type):
    def fake_open(path, mode="rb"):
        raise exception_type("mocked")

    monkeypatch.setattr(builtins, "open", fake_open)
    with pytest.raises(exception_type):
        toml_mod.load_toml_file("settings.toml")


def test_load_toml_file_propagates_decode_errors(monkeypatch):
    # C000F001B0004
    monkeypatch.setattr(builtins, "open", lambda path, mode="rb": io.BytesIO(b"max_depth = ]"))

    with pytest.raises(tomli.TOMLDecodeError):
        toml_mod.load_toml_file("bad.toml")


# --------------------------------------------------------------------------
# C000F002: load_toml_text
# --------------------------------------------------------------------------


def test_load_toml_text():
    # C000F002B0001
    assert toml_mod.load_toml_text("seed = 7") == {"seed": 7}


def test_load_toml_text_decode_error():
    # C000F002B0002
    with pytest.raises(tomli.TOMLDecodeError):
        toml_mod.load_toml_text("seed = = 7")


# --------------------------------------------------------------------------
# C000F003: dump_toml_to_str
# --------------------------------------------------------------------------


def test_dump_toml_to_str_passes_indent(monkeypatch):
    # C000F003B0001
    captured = {}

    def fake_dumps(data, indent=2):
        captured["data"] = data
        captured["indent"] = indent
        return "seed = 1\n"

    monkeypatch.setattr(tomli_w, "dumps", fake_dumps)

    assert toml_mod.dump_toml_to_str({"seed": 1}, indent=4) == "seed = 1\n"
    assert captured == {"data": {"seed": 1}, "indent": 4}


# --------------------------------------------------------------------------
# C000F004: dump_toml_to_file
# --------------------------------------------------------------------------


def test_dump_toml_to_file_round_trips(tmp_path):
    # C000F004B0001
    target_path = tmp_path / "out.toml"

    toml_mod.dump_toml_to_file({"default_rules": False, "max_depth": 12}, target_path)

    assert toml_mod.load_toml_file(target_path) == {"default_rules": False, "max_depth": 12}
