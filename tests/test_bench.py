import io

import life_bench


def test_line_timing_report():
    buf = io.StringIO()
    life_bench.run_benchmark(
        n_frames=5, term_rows=10, term_cols=20, seed=3, line_timing=True, out=buf
    )
    report = buf.getvalue()
    assert "Grid: 9x20" in report
    assert "Terminal: 10x20" in report
    assert "frame()" in report
    assert "step()" in report
    assert "Frames over budget:" in report


def test_cli_plain_line_timing(capsys):
    life_bench.main(["-n", "3", "--rows", "8", "--cols", "12", "--seed", "1",
                     "--plain", "--line-timing"])
    out = capsys.readouterr().out
    assert "Colored: False" in out
    assert "TOTAL (frame+step)" in out


def test_stats_are_logged_only_when_asked(tmp_path):
    path = tmp_path / "run.csv"
    life_bench.run_benchmark(
        n_frames=4, term_rows=6, term_cols=8, seed=2, line_timing=True,
        stats_path=str(path), out=io.StringIO(),
    )
    lines = path.read_text().splitlines()
    assert lines[0] == "gen,time_s,population,event"
    assert [line.split(",")[0] for line in lines[1:]] == ["0", "1", "2", "3", "4"]
    assert lines[1].endswith(",start")
