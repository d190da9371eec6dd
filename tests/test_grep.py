import io

import pytest

from xvtools.grep import grep, main, match


@pytest.mark.parametrize(
    "re, text, expected",
    [
        ("abc", "xxabcxx", True),
        ("abc", "abxc", False),
        ("^ab", "abc", True),
        ("^bc", "abc", False),
        ("bc$", "abc", True),
        ("ab$", "abc", False),
        ("a.c", "abc", True),
        ("ab*c", "ac", True),
        ("ab*c", "abbbbc", True),
        ("ab*c", "abd", False),
        (".*", "", True),
        ("", "anything", True),
        ("^$", "", True),
        ("^$", "x", False),
        ("x*y", "xxxz", False),
    ],
)
def test_match(re, text, expected):
    assert match(re, text) is expected


def test_grep_prints_matching_lines():
    out = io.StringIO()
    count = grep("o", io.StringIO("one\ntwo\nthree\nfour\n"), out)
    assert out.getvalue() == "one\ntwo\nfour\n"
    assert count == 3


def test_grep_drops_unterminated_last_line():
    out = io.StringIO()
    grep("a", io.StringIO("a1\na2"), out)
    assert out.getvalue() == "a1\n"


def test_grep_handles_lines_across_chunks():
    text = "x" * 2000 + "\nneedle\n"
    out = io.StringIO()
    grep("needle", io.StringIO(text), out)
    assert out.getvalue() == "needle\n"


def test_main_usage(capsys):
    assert main([]) == 1
    assert "usage: grep pattern" in capsys.readouterr().err


def test_main_files(tmp_path, capsys):
    f = tmp_path / "data.txt"
    f.write_text("alpha\nbeta\ngamma\n")
    assert main(["^.a", str(f)]) == 0
    assert capsys.readouterr().out == "gamma\n"


def test_main_missing_file(tmp_path, capsys):
    missing = tmp_path / "nope"
    assert main(["x", str(missing)]) == 1
    assert f"grep: cannot open {missing}" in capsys.readouterr().out