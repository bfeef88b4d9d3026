"""Logging formatters for client-tagged records."""

import logging


class ClientFormatter(logging.Formatter):
    """Logging formatter that prepends the client name from the extra parameter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a client prefix if present.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message, prefixed with ``[client]`` when the record
            was logged with ``extra={"client": name}``
        """
        msg = super().format(record)
        client = getattr(record, "client", None)

        if client:
            return f"[{client}] {msg}"

        return msg
