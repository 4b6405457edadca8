class ConfigError(Exception):
    """Missing credential or unusable target table for the active market."""


class UpstreamError(Exception):
    """The price provider could not deliver quotes."""


class ProviderUnavailableError(UpstreamError):
    """Transport failure or non-2xx status from the price provider."""


class ProviderResponseError(UpstreamError):
    """The price provider answered but the body could not be parsed."""


class LedgerImportError(Exception):
    def __init__(self, message: str, path: str | None = None, line: int | None = None):
        self.path = path
        self.line = line
        where = path or "<input>"
        if line is not None:
            where = f"{where}:{line}"
        super().__init__(f"{where}: {message}")
