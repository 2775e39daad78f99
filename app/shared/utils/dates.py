# app/shared/utils/dates.py
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta, MO

# Ventanas disponibles en el reporte de faltantes
WINDOW_DAYS_OPTIONS = (1, 3, 7, 14, 30)


def last_n_days(days: int, today: Optional[date] = None) -> Tuple[datetime, datetime]:
    """
    Rango de los últimos ``days`` días calendario incluyendo hoy.
    El fin es exclusivo (mañana 00:00).
    """
    today = today or date.today()
    end = datetime.combine(today + timedelta(days=1), time.min)
    start = end - timedelta(days=days)
    return start, end


def month_range(offset: int = 0, today: Optional[date] = None) -> Tuple[datetime, datetime]:
    """Mes calendario completo (offset 0 = mes actual, -1 = anterior). Fin exclusivo."""
    today = today or date.today()
    start = datetime.combine(today.replace(day=1), time.min) + relativedelta(months=offset)
    return start, start + relativedelta(months=1)


def day_bounds(date_from: Optional[date], date_to: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inicio del primer día y fin exclusivo del último (``date_to`` incluido completo)"""
    start = datetime.combine(date_from, time.min) if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None
    return start, end


def week_start(value: date) -> date:
    """Lunes de la semana de ``value``"""
    return value + relativedelta(weekday=MO(-1))


def last_n_weeks(n: int, reference: Optional[date] = None) -> List[Tuple[str, date, date]]:
    """
    Las últimas ``n`` semanas (lunes a domingo) terminando en la semana de
    ``reference``, de la más vieja a la más nueva, con etiqueta ``dd/MM–dd/MM``.
    """
    current = week_start(reference or date.today())
    weeks = []
    for i in range(n - 1, -1, -1):
        start = current - timedelta(weeks=i)
        end = start + timedelta(days=6)
        weeks.append((f"{start:%d/%m}–{end:%d/%m}", start, end))
    return weeks


def months_of_year(year: int) -> List[str]:
    return [f"{year}-{month:02d}" for month in range(1, 13)]


def short_range_label(start: datetime, end: datetime) -> str:
    """Etiqueta ``dd/MM – dd/MM`` para un rango con fin exclusivo"""
    last = end - timedelta(microseconds=1)
    return f"{start:%d/%m} – {last:%d/%m}"
