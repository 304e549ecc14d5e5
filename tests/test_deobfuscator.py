import base64

import pytest

from moonsec_deobf import MoonsecDeobfuscator, Settings, __version__
from moonsec_deobf import passes

from conftest import junk_script


def layer_names(result):
    return [layer.name for layer in result.statistics.layers]


def test_concatenation_scenario(deobfuscator):
    result = deobfuscator.deobfuscate('"a" .. "b"')
    assert result.success
    assert result.deobfuscated_code == '"ab"'
    assert layer_names(result) == ["Comments/Whitespace", "String Concatenation", "Code Formatting"]
    assert result.statistics.layers_removed == 3


def test_base64_scenario(deobfuscator):
    result = deobfuscator.deobfuscate('local s = frombase64("SGVsbG8=")')
    assert result.deobfuscated_code == 'local s = "Hello"'
    assert result.statistics.strings_decoded == 1
    assert ("Base64 Decoding", 1) in result.statistics.layers


def test_hex_scenario(deobfuscator):
    result = deobfuscator.deobfuscate(r'"\x48\x65\x6c\x6c\x6f"')
    assert result.deobfuscated_code == '"Hello"'


def test_loadstring_scenario(deobfuscator):
    result = deobfuscator.deobfuscate('loadstring("print(1)")')
    assert result.deobfuscated_code == "print(1)"
    assert ("Loadstring Extraction", 1) in result.statistics.layers


def test_base64_then_loadstring_unwrap(deobfuscator):
    result = deobfuscator.deobfuscate('loadstring(frombase64("cHJpbnQoMSk="))()')
    assert result.deobfuscated_code == "print(1)()"
    assert result.statistics.strings_decoded == 2


def test_junk_scenario(deobfuscator):
    code = junk_script(5)
    result = deobfuscator.deobfuscate(code)
    assert result.deobfuscated_code == 'print("ok")'
    assert ("Junk Code Removal", 5) in result.statistics.layers
    assert result.statistics.final_length <= result.statistics.original_length
    assert result.statistics.reduction_percent > 0
    assert deobfuscator.analyze(code).has_junk_code


def test_original_code_returned_verbatim(deobfuscator):
    code = "-- header\nlocal x = 1\n"
    result = deobfuscator.deobfuscate(code)
    assert result.original_code == code
    assert result.statistics.original_length == len(code)
    assert result.statistics.final_length == len(result.deobfuscated_code)


def test_settings_gate_strip_junk_and_format():
    deobfuscator = MoonsecDeobfuscator(Settings(remove_junk=False, auto_format=False))
    code = "-- comment\nlocal a = function() end;\nprint(1)"
    result = deobfuscator.deobfuscate(code)
    assert result.deobfuscated_code == code
    assert result.statistics.layers == []


def test_configure_merges_options(deobfuscator):
    deobfuscator.configure(auto_format=False)
    assert deobfuscator.settings.auto_format is False
    assert deobfuscator.settings.remove_junk is True
    result = deobfuscator.deobfuscate("if x then\nprint(1)\nend")
    assert result.deobfuscated_code == "if x then\nprint(1)\nend"


def test_configure_rejects_unknown(deobfuscator):
    with pytest.raises(ValueError):
        deobfuscator.configure(turbo=True)


def test_ui_only_settings_do_not_change_output(deobfuscator):
    code = 'local s = "a" .. "b"'
    expected = deobfuscator.deobfuscate(code).deobfuscated_code
    deobfuscator.configure(highlight_syntax=False, extract_strings=False, aggressive_mode=True)
    assert deobfuscator.deobfuscate(code).deobfuscated_code == expected


def test_pipeline_fault_returns_original(deobfuscator, monkeypatch):
    def boom(code):
        raise RuntimeError("boom")

    monkeypatch.setattr(passes, "fold_concatenation", boom)
    code = 'print("x" .. "y")'
    result = deobfuscator.deobfuscate(code)

    assert result.success is False
    assert result.error == "boom"
    assert result.deobfuscated_code == result.original_code == code
    assert layer_names(result) == ["Comments/Whitespace"]


def test_non_string_input_raises(deobfuscator):
    with pytest.raises(TypeError):
        deobfuscator.deobfuscate(None)


def test_empty_input(deobfuscator):
    result = deobfuscator.deobfuscate("")
    assert result.success
    assert result.deobfuscated_code == ""
    assert result.statistics.reduction_percent == 0.0


def test_metadata(deobfuscator):
    metadata = deobfuscator.deobfuscate("print(1)").metadata
    assert metadata["version"] == __version__
    assert metadata["timestamp"].endswith("+00:00")


def test_warns_on_moonsec_banner(deobfuscator):
    code = "--[[This file was protected with MoonSec V3]]\nprint(1)"
    result = deobfuscator.deobfuscate(code)
    assert any("MoonSec V3" in warning for warning in result.warnings)


def test_warns_on_remaining_char_codes(deobfuscator):
    result = deobfuscator.deobfuscate("print(string.char(72, 105))")
    assert result.deobfuscated_code == "print(string.char(72, 105))"
    assert any("string.char" in warning for warning in result.warnings)


def test_plain_code_has_no_warnings(deobfuscator):
    assert deobfuscator.deobfuscate("print(1)").warnings == []


def test_to_dict_is_plain_data(deobfuscator):
    data = deobfuscator.deobfuscate('"a" .. "b"').to_dict()
    assert data["success"] is True
    assert data["statistics"]["layers"][0] == {"name": "Comments/Whitespace", "count": 1}


def test_unwrapped_base64_payload_keeps_escaped_quotes(deobfuscator):
    payload = base64.b64encode(b'print("hi")').decode()
    result = deobfuscator.deobfuscate(f'loadstring(frombase64("{payload}"))()')
    assert result.deobfuscated_code == 'print(\\"hi\\")()'
