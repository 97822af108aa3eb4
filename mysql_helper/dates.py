# /mysql_helper/dates.py
"""Conversion between the dd/mm/yyyy form used in input fields and MySQL's yyyy-mm-dd."""

import re
from datetime import date, datetime

INPUT_DATE_RE = re.compile(r'^\d{1,2}/\d{1,2}/\d{2,4}\Z')
SYSTEM_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}\Z')


def _pad_left(value, width, fill):
    missing = width - len(value)
    if missing <= 0:
        return value
    padding = (fill * missing)[:missing]
    return padding + value


def input_date_to_system_date(value):
    """'5/3/2024' -> '2024-03-05'. Two-digit years are read as 20yy. None if unparseable."""
    if not isinstance(value, str) or not INPUT_DATE_RE.match(value):
        return None
    day, month, year = value.split('/')
    return f"{_pad_left(year, 4, '20')}-{_pad_left(month, 2, '0')}-{_pad_left(day, 2, '0')}"


def system_date_to_input_date(value, default_today=False):
    """'2024-03-05' -> '05/03/2024'. Empty input gives today's date if asked, otherwise ''."""
    if isinstance(value, (date, datetime)):
        return value.strftime('%d/%m/%Y')
    if isinstance(value, str) and SYSTEM_DATE_RE.match(value):
        year, month, day = value.split('-')
        return f"{day}/{month}/{year}"
    if default_today and not value:
        return datetime.now().strftime('%d/%m/%Y')
    return ''
