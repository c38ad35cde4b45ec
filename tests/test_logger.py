from pathlib import Path

from hamkae.tools.logger import configure_logging, make_logger, mask_token, should_log


def test_level_gating(monkeypatch) -> None:
    monkeypatch.setenv("HAMKAE_LOG_LEVEL", "WARNING")
    assert not should_log("INFO")
    assert should_log("WARNING")
    assert should_log("ERROR")


def test_logger_writes_file_and_streams(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("HAMKAE_LOG_LEVEL", "INFO")
    logfile = tmp_path / "logs" / "client.log"
    log = make_logger("api", str(logfile))
    assert logfile.exists()

    log.debug("hidden")
    log.info("request sent")
    log.error("backend down")

    captured = capsys.readouterr()
    assert "INFO    api: request sent" in captured.out
    assert "backend down" in captured.err
    assert "hidden" not in captured.out

    lines = logfile.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[1].endswith("ERROR   api: backend down")


def test_configure_logging_sets_level(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("HAMKAE_LOG_LEVEL", "INFO")
    configure_logging("debug", str(tmp_path / "all.log"))
    try:
        assert should_log("DEBUG")
        assert (tmp_path / "all.log").exists()
    finally:
        configure_logging(None, None)


def test_mask_token() -> None:
    assert mask_token(None) == "<none>"
    assert mask_token("short") == "short"
    assert mask_token("x" * 30) == "x" * 20 + "..."
