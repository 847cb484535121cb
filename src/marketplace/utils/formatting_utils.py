from decimal import Decimal
from typing import Any, Dict, Optional


class FormattingUtils:
    """
    Formatting helpers for notification text
    """

    CURRENCY_FORMATS = {
        "USD": {"symbol": "$", "decimal_places": 2, "symbol_position": "before"},
        "EUR": {"symbol": "€", "decimal_places": 2, "symbol_position": "after"},
        "GBP": {"symbol": "£", "decimal_places": 2, "symbol_position": "before"},
    }

    @classmethod
    def format_money(cls, amount_cents: int, currency: str = "USD") -> str:
        """
        Format money amount for display

        Examples:
            format_money(1299, 'USD') -> "$12.99"
            format_money(123456, 'EUR') -> "1,234.56€"
        """
        currency_config = cls.CURRENCY_FORMATS.get(currency, cls.CURRENCY_FORMATS["USD"])
        decimal_places = currency_config["decimal_places"]
        amount = Decimal(amount_cents) / (10 ** decimal_places)
        formatted_amount = f"{amount:,.{decimal_places}f}"

        if currency_config["symbol_position"] == "before":
            return f"{currency_config['symbol']}{formatted_amount}"
        return f"{formatted_amount}{currency_config['symbol']}"

    @classmethod
    def format_address(cls, address: Optional[Dict[str, Any]]) -> str:
        """
        Format a shipping address snapshot into a single line

        Expected components: address, city, postal_code, country
        """
        if not address:
            return ""
        parts = [address.get("address")]
        city_zip = " ".join(p for p in (address.get("postal_code"), address.get("city")) if p)
        parts.append(city_zip)
        parts.append(address.get("country"))
        return ", ".join(p for p in parts if p)
