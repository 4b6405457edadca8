import os
import tempfile

from walletalloc.models import LedgerEntry, PriceQuote


def quote(symbol, price, **kw):
    return PriceQuote(symbol=symbol, price=price, **kw)


def entry(symbol, qty, target=None, group="Core", barca="Base", **kw):
    return LedgerEntry(
        symbol=symbol,
        group_name=group,
        barca=barca,
        target_percent=target,
        current_quantity=qty,
        **kw,
    )


def write_file(directory, name, text):
    path = os.path.join(directory, name)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(text)
    return path


class TempDirMixin:
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()
