from enum import Enum


class Currency(str, Enum):
    ARS = "ARS"
    USD = "USD"
    EUR = "EUR"
    BRL = "BRL"

    def get_minor_units(self) -> int:
        """Number of minor units per major unit (all supported currencies use cents)."""
        return 100
