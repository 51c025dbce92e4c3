import io
import warnings

import pytest

from rivet.cli.rivet_main import _parse_args
from rivet.exceptions import ParseException
from rivet.ir.printer import BANNER
from rivet.warnings import UnreachableBlockWarning

SOURCE = """
global @g: i32

function foo(%a: i32) {
entry:
    %x = add %a, 1
    jmp @exit
exit:
    ret %x
}
"""

SOURCE_WITH_DEAD_CODE = """
function foo() {
entry:
    stop
dead:
    stop
}
"""


def test_report(make_file, capsys):
    path = make_file("foo.ir", SOURCE)

    _parse_args([str(path)])

    out, _ = capsys.readouterr()
    lines = [line.rstrip() for line in out.splitlines()]
    assert lines[0] == BANNER
    assert "rivet: reachable values of foo" in lines
    assert "BB exit" in lines
    assert lines[-1].strip() == "%x: i32 = add %a, 1"


def test_annotate(make_file, capsys):
    path = make_file("foo.ir", SOURCE)

    _parse_args([str(path), "--annotate"])

    out, _ = capsys.readouterr()
    assert "; riv: @g, %a\n" in out
    assert "; riv: @g, %a, %x\n" in out


def test_stdin(monkeypatch, capsys):
    stdin = io.StringIO(SOURCE)
    monkeypatch.setattr("sys.stdin", stdin)

    _parse_args(["--stdin"])

    out, _ = capsys.readouterr()
    assert "BB entry" in out


def test_no_input(capsys):
    with pytest.raises(SystemExit) as e:
        _parse_args([])

    assert e.value.code == 1
    out, _ = capsys.readouterr()
    assert "No input file provided" in out


def test_parse_error(make_file, capsys):
    path = make_file("bad.ir", "function foo( {\n")

    with pytest.raises(SystemExit) as e:
        _parse_args([str(path)])

    assert e.value.code == 1
    out, _ = capsys.readouterr()
    assert out.startswith("Error: invalid syntax")


def test_semantic_errors(make_file, capsys):
    source = """
    function foo() {
    entry:
        ret %missing
    }
    """
    path = make_file("bad.ir", source)

    with pytest.raises(SystemExit) as e:
        _parse_args([str(path)])

    assert e.value.code == 1
    out, _ = capsys.readouterr()
    assert "ir semantic errors" in out
    assert "var %missing not defined" in out


def test_no_check(make_file, capsys):
    source = """
    function foo() {
    entry:
        ret %missing
    }
    """
    path = make_file("unchecked.ir", source)

    _parse_args([str(path), "--no-check"])

    out, _ = capsys.readouterr()
    assert "BB entry" in out


def test_traceback(make_file):
    path = make_file("bad.ir", "function foo( {\n")

    with pytest.raises(ParseException):
        _parse_args([str(path), "--traceback"])


def test_warnings(make_file, capsys):
    """
    test -Werror and -Wnone
    """
    path = make_file("dead.ir", SOURCE_WITH_DEAD_CODE)
    path_str = str(path)

    with warnings.catch_warnings(record=True) as w:
        warnings.simplefilter("always")
        _parse_args([path_str])
    w = [x for x in w if issubclass(x.category, UnreachableBlockWarning)]
    assert len(w) == 1

    out, _ = capsys.readouterr()
    assert "(unreached)" in out

    with pytest.raises(SystemExit):
        _parse_args([path_str, "-W", "error"])
    out, _ = capsys.readouterr()
    assert "basic block dead is unreachable" in out

    # test squashing warnings
    with warnings.catch_warnings(record=True) as w:
        _parse_args([path_str, "-W", "none"])
    assert not any(issubclass(x.category, UnreachableBlockWarning) for x in w)
