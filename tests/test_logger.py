from castrec import logger


def test_info_prints_prefixed_message(monkeypatch, capsys):
    monkeypatch.setattr(logger, "_enabled", True)
    logger.info("Recording session started")
    assert capsys.readouterr().out == "::: Recording session started\n"


def test_disable_suppresses_output(monkeypatch, capsys):
    monkeypatch.setattr(logger, "_enabled", True)
    logger.disable()
    logger.info("hidden")
    assert capsys.readouterr().out == ""