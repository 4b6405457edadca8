from typing import Dict, Iterable

from ..models import PriceQuote

def build_price_index(quotes: Iterable[PriceQuote]) -> Dict[str, PriceQuote]:
    # later quotes for the same symbol overwrite earlier ones
    return {quote.symbol: quote for quote in quotes}
