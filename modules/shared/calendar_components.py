"""
Timeline (Gantt) logic for the planning views
"""

import calendar
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from modules.vorhaben.vorhaben_config import VORHABEN_PRIMARY_KEY, get_status_color
from .ui_helpers import UIHelpers

MONTH_LABELS = ['Jan', 'Feb', 'Mär', 'Apr', 'Mai', 'Jun', 'Jul', 'Aug', 'Sep', 'Okt', 'Nov', 'Dez']

START_FIELD = 'cr6df_planung_geplanterstart'
END_FIELD = 'cr6df_planung_geplantesende'


def parse_date(value: Optional[str]) -> Optional[date]:
    """ISO date or datetime string -> date, None when empty or invalid"""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def first_of_month(year: int, month: int, offset: int = 0) -> date:
    year, month = _shift_month(year, month, offset)
    return date(year, month, 1)


def last_of_month(year: int, month: int, offset: int = 0) -> date:
    year, month = _shift_month(year, month, offset)
    return date(year, month, calendar.monthrange(year, month)[1])


def has_planning_dates(record: Dict) -> bool:
    return bool(parse_date(record.get(START_FIELD)) and parse_date(record.get(END_FIELD)))


class PlanningTimeline:
    """Maps planned date ranges onto percentage positions of a timeline"""

    def __init__(self, today: Optional[date] = None):
        self.today = today or date.today()

    def months_between(self, start: date, end: date) -> List[Dict]:
        """Month header entries from start's month through end's month"""
        months = []
        year, month = start.year, start.month
        while (year, month) <= (end.year, end.month):
            months.append({
                'year': year,
                'month': month,
                'label': MONTH_LABELS[month - 1],
            })
            year, month = _shift_month(year, month, 1)
        return months

    def fallback_range(self, fallback: str = 'half_year') -> Tuple[date, date]:
        """View when no record has planning dates"""
        if fallback == 'quarter':
            quarter_start = (self.today.month - 1) // 3 * 3 + 1
            return (first_of_month(self.today.year, quarter_start),
                    last_of_month(self.today.year, quarter_start, 2))
        return (first_of_month(self.today.year, self.today.month),
                last_of_month(self.today.year, self.today.month, 5))

    def view_range(self, records: Iterable[Dict], fallback: str = 'half_year') -> Tuple[date, date]:
        """One month padding before the earliest and after the latest planned date"""
        dates = []
        for record in records:
            for field in (START_FIELD, END_FIELD):
                parsed = parse_date(record.get(field))
                if parsed:
                    dates.append(parsed)

        if not dates:
            return self.fallback_range(fallback)

        earliest, latest = min(dates), max(dates)
        return (first_of_month(earliest.year, earliest.month, -1),
                last_of_month(latest.year, latest.month, 1))

    @staticmethod
    def bar_position(item_start: date, item_end: date, view_start: date, view_end: date,
                     min_width: float = 1.0) -> Optional[Dict[str, float]]:
        """Left offset and width in percent, None when outside the view"""
        total_days = (view_end - view_start).days
        if total_days <= 0:
            return None

        if item_start > view_end or item_end < view_start:
            return None

        clamped_start = max(item_start, view_start)
        clamped_end = min(item_end, view_end)

        start_offset = (clamped_start - view_start).days
        duration = (clamped_end - clamped_start).days

        left = start_offset / total_days * 100
        width = max(duration / total_days * 100, min_width)
        return {'left': round(left, 4), 'width': round(width, 4)}

    def _bar(self, record: Dict, view_start: date, view_end: date, min_width: float) -> Optional[Dict]:
        start = parse_date(record.get(START_FIELD))
        end = parse_date(record.get(END_FIELD))
        if not start or not end:
            return None
        position = self.bar_position(start, end, view_start, view_end, min_width)
        if not position:
            return None
        name = record.get('cr6df_name') or record.get('cr6df_newcolumn') or ''
        return {
            'id': record.get(VORHABEN_PRIMARY_KEY),
            'name': name,
            'label': UIHelpers.truncate_text(name, 40),
            'title': f"{name}: {UIHelpers.format_date(start)} - {UIHelpers.format_date(end)}",
            'start': start.isoformat(),
            'end': end.isoformat(),
            'color': get_status_color(record.get('cr6df_lifecyclestatus')),
            **position
        }

    def build_timeline(self, records: List[Dict], current: Optional[Dict] = None) -> Dict:
        """
        Timeline data for the overview or, with current, the detail view

        The detail view pins the current record, uses a 2% minimum bar width
        and falls back to the current quarter.
        """
        current_id = current.get(VORHABEN_PRIMARY_KEY) if current else None
        planned = [
            r for r in records
            if has_planning_dates(r) and (current_id is None or r.get(VORHABEN_PRIMARY_KEY) != current_id)
        ]

        if current is not None:
            min_width, fallback = 2.0, 'quarter'
            view_start, view_end = self.view_range(planned + [current], fallback)
        else:
            min_width, fallback = 1.0, 'half_year'
            view_start, view_end = self.view_range(planned, fallback)

        months = self.months_between(view_start, view_end)
        for i, m in enumerate(months):
            m['left'] = round(i / len(months) * 100, 4)
            m['width'] = round(100 / len(months), 4)
            m['showYear'] = i == 0 or m['month'] == 1

        bars = [bar for bar in (self._bar(r, view_start, view_end, min_width) for r in planned) if bar]

        return {
            'viewStart': view_start.isoformat(),
            'viewEnd': view_end.isoformat(),
            'months': months,
            'bars': bars,
            'current': self._bar(current, view_start, view_end, min_width) if current else None,
            'count': len(planned),
        }
