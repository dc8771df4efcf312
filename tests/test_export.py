from aethergrid.export import DEFAULT_FILENAME, HEADER, performance_log_to_csv, write_performance_csv

ITEM = {
    "draw_number": 101,
    "draw_date": "2024-01-02",
    "forecast_top10_main": [4, 8, 15, 16, 23, 42, 1, 2, 3, 5],
    "actual_main": [4, 8, 30, 31, 49],
    "main_hits": 2,
    "forecast_top5_star": [1, 2, 3, 4, 5],
    "actual_star": [2, 11],
    "star_hits": 1,
    "forecast_baseline_main": [10, 20, 30, 40, 50, 11, 21, 31, 41, 49],
    "baseline_main_hits": 3,
    "average_winner_rank": 12.4,
}


def test_csv_rows():
    text = performance_log_to_csv([ITEM])
    lines = text.split("\n")
    assert lines[0] == HEADER
    assert lines[1] == (
        '101,2024-01-02,"4 8 15 16 23 42 1 2 3 5","4 8 30 31 49",2,"1 2 3 4 5","2 11",1,'
        '"10 20 30 40 50 11 21 31 41 49",3,12.40'
    )
    assert text.endswith("\n")
    assert len(HEADER.split(",")) == 11


def test_empty_log_is_header_only():
    assert performance_log_to_csv([]) == HEADER + "\n"


def test_write_to_export_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("AETHER_EXPORT_DIR", str(tmp_path / "out"))
    path = write_performance_csv([ITEM])
    assert path.endswith(DEFAULT_FILENAME)
    content = (tmp_path / "out" / DEFAULT_FILENAME).read_text(encoding="utf-8")
    assert content == performance_log_to_csv([ITEM])


def test_write_explicit_path(tmp_path):
    target = tmp_path / "log.csv"
    assert write_performance_csv([], str(target)) == str(target)
    assert target.read_text(encoding="utf-8") == HEADER + "\n"
