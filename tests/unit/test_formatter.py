import logging

from smoker.logging import ClientFormatter


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="smoker.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestClientFormatter:
    def test_prefixes_client_name(self) -> None:
        formatter = ClientFormatter("%(levelname)s %(message)s")

        output = formatter.format(make_record("connected", client="orders"))

        assert output == "[orders] INFO connected"

    def test_without_client(self) -> None:
        formatter = ClientFormatter("%(message)s")

        assert formatter.format(make_record("plain")) == "plain"

    def test_empty_client_ignored(self) -> None:
        formatter = ClientFormatter("%(message)s")

        assert formatter.format(make_record("plain", client="")) == "plain"

    def test_logger_extra(self, caplog) -> None:
        logger = logging.getLogger("smoker.test.formatter")
        formatter = ClientFormatter("%(message)s")

        with caplog.at_level(logging.INFO, logger="smoker.test.formatter"):
            logger.info("Client %s ready", "s3", extra={"client": "s3"})

        assert formatter.format(caplog.records[0]) == "[s3] Client s3 ready"
