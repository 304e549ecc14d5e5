import pytest

from moonsec_deobf.analyzer import analyze, calculate_complexity

from conftest import junk_script


def test_plain_script_is_low():
    report = analyze("local x = 1\nprint(x)\nreturn x")
    assert report.obfuscation_level == "low"
    assert report.estimated_time == "instant"
    assert report.lines == 3
    assert report.patterns_found == []
    assert report.complexity == "low"


def test_loadstring_base64_hex_is_high():
    code = 'loadstring(frombase64("SGVsbG8="))()\nprint("\\x41")'
    report = analyze(code)
    assert report.has_loadstring and report.has_base64 and report.has_hex
    assert report.obfuscation_level == "high"
    assert report.estimated_time == "moderate"
    assert report.patterns_found == ["Base64: 1", "Base64: 1"]


def test_loadstring_alone_is_medium():
    report = analyze("loadstring(x)()")
    assert report.obfuscation_level == "medium"
    assert report.estimated_time == "fast"


def test_long_concatenation_scores_one():
    code = '"a" .. ' * 10 + '"b"'
    report = analyze(code)
    assert report.has_concatenation
    assert report.obfuscation_level == "low"
    report = analyze(code + '\nprint("\\x41")')
    assert report.obfuscation_level == "medium"


def test_short_concatenation_does_not_score():
    report = analyze('print("\\x41" .. "b")')
    assert report.has_concatenation
    assert report.obfuscation_level == "low"


@pytest.mark.parametrize("count, expected", [(3, False), (4, True)])
def test_junk_threshold(count, expected):
    assert analyze(junk_script(count)).has_junk_code is expected


def test_analyze_is_deterministic():
    code = 'loadstring(frombase64("SGVsbG8="))()'
    assert analyze(code) == analyze(code)


@pytest.mark.parametrize("code, expected", [
    ("print(1)", "low"),
    ("function a() end function b() end function c() end function d() end function e() end", "medium"),
    ("loadstring loadstring loadstring", "high"),
    ("LoadString " * 6, "very-high"),
])
def test_complexity_buckets(code, expected):
    assert calculate_complexity(code) == expected
