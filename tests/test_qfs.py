import pytest

from qfs.qfs import build_argparser, main


EXPECTED = [
    "2 do_fork <- sys_clone",
    "0 copy_process+0x10 <- do_fork+0x4",
    "1 floppy_interrupt[floppy]+0x10 <- _text",
]


def test_argparser_defaults():
    args = build_argparser().parse_args(["syms", "trace"])
    assert (args.symbols, args.trace) == ("syms", "trace")
    assert args.workers == 1
    assert not args.keep_unresolved
    assert args.output is None


def test_symbolize_to_stdout(kallsyms_file, trace_file, capsys):
    main([str(kallsyms_file), str(trace_file)])
    assert capsys.readouterr().out.splitlines() == EXPECTED


def test_symbolize_with_workers(kallsyms_file, trace_file, capsys):
    main(["--workers", "3", str(kallsyms_file), str(trace_file)])
    assert capsys.readouterr().out.splitlines() == EXPECTED


def test_symbolize_to_file(kallsyms_file, trace_file, tmp_path, capsys):
    out = tmp_path / "result.txt"
    main(["--output", str(out), str(kallsyms_file), str(trace_file)])
    assert out.read_text().splitlines() == EXPECTED
    assert capsys.readouterr().out == ""


def test_two_symbol_example(tmp_path, capsys):
    syms = tmp_path / "syms"
    syms.write_text("64 T alpha\nc8 T beta\n")
    trace = tmp_path / "trace"
    trace.write_text("1 96 fa\n")
    main([str(syms), str(trace)])
    assert capsys.readouterr().out == "1 alpha+0x32 <- beta+0x32\n"


def test_unresolved_is_fatal_without_output(kallsyms_file, tmp_path, capsys):
    trace = tmp_path / "trace"
    trace.write_text("2 ffffffff81012340 ffffffff81099000\n0 10 ffffffff81000000\n")
    with pytest.raises(SystemExit) as exc:
        main([str(kallsyms_file), str(trace)])
    assert exc.value.code == 1
    assert capsys.readouterr().out == ""


def test_keep_unresolved(kallsyms_file, tmp_path, capsys):
    trace = tmp_path / "trace"
    trace.write_text("0 10 ffffffff81000000\n")
    main(["--keep-unresolved", str(kallsyms_file), str(trace)])
    assert capsys.readouterr().out == "0 0x10 <- _text\n"


def test_malformed_symbol_table_aborts(tmp_path, trace_file, capsys):
    syms = tmp_path / "syms"
    syms.write_text("ffffffff81000000 T _text\nzz not-hex name\n")
    with pytest.raises(SystemExit) as exc:
        main([str(syms), str(trace_file)])
    assert exc.value.code == 1
    assert capsys.readouterr().out == ""


def test_missing_file_aborts(kallsyms_file, tmp_path):
    with pytest.raises(SystemExit) as exc:
        main([str(kallsyms_file), str(tmp_path / "missing")])
    assert exc.value.code == 1


def test_bad_workers(kallsyms_file, trace_file):
    with pytest.raises(SystemExit) as exc:
        main(["--workers", "0", str(kallsyms_file), str(trace_file)])
    assert exc.value.code == 1


def test_summary(kallsyms_file, trace_file, capsys):
    main(["--summary", str(kallsyms_file), str(trace_file)])
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "symbols\t6",
        "range\t0xffffffff81000000-0xffffffffa0007bfe",
        "module\t[vmlinux]\t4",
        "module\t[floppy]\t2",
        "records\t3",
        "cpus\t0,1,2",
    ]


def test_output_into_missing_directory_aborts(kallsyms_file, trace_file, tmp_path, capsys):
    out = tmp_path / "no-such-dir" / "result.txt"
    with pytest.raises(SystemExit) as exc:
        main(["--output", str(out), str(kallsyms_file), str(trace_file)])
    assert exc.value.code == 1
    assert not out.exists()
    assert capsys.readouterr().out == ""


def test_workers_help_says_no_speedup():
    parser = build_argparser()
    (action,) = [a for a in parser._actions if a.dest == "workers"]
    assert "do not speed" in " ".join(action.help.split())
