from .dates import load_zone, parse_decimal, parse_portal_timestamp
from .money import cents_to_money_str, parse_amount

__all__ = ["load_zone", "parse_decimal", "parse_portal_timestamp", "parse_amount", "cents_to_money_str"]
