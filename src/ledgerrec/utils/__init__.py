"""Utility functions for ledgerrec."""

from ledgerrec.utils.date_parser import parse_date, parse_period_arg
from ledgerrec.utils.amount_parser import format_amount, parse_amount

__all__ = ["parse_date", "parse_period_arg", "parse_amount", "format_amount"]
