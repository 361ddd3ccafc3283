"""Year/month picker state used for direct date selection."""

from __future__ import annotations

from dataclasses import dataclass

from .month import Month


@dataclass
class DateSelector:
    """Picker state; confirming yields the month to jump to."""

    is_open: bool = False
    selected_year: int = 1970
    selected_month: int = 1
    show_year_dropdown: bool = False
    show_month_dropdown: bool = False

    def open(self, active: Month) -> None:
        self.is_open = True
        self.selected_year = active.year
        self.selected_month = active.month

    def close(self) -> None:
        self.is_open = False
        self.show_year_dropdown = False
        self.show_month_dropdown = False

    def select_year(self, year: int) -> None:
        self.selected_year = year

    def select_month(self, month: int) -> None:
        if not 1 <= month <= 12:
            raise ValueError(f"month must be in 1..12, got {month}")
        self.selected_month = month

    def toggle_year_dropdown(self) -> None:
        self.show_year_dropdown = not self.show_year_dropdown
        self.show_month_dropdown = False

    def toggle_month_dropdown(self) -> None:
        self.show_month_dropdown = not self.show_month_dropdown
        self.show_year_dropdown = False

    def confirm(self) -> Month:
        selected = Month(self.selected_year, self.selected_month)
        self.close()
        return selected


def year_range(start_year: int, size: int = 10) -> list[int]:
    """Years offered by the year dropdown."""
    return [start_year + offset for offset in range(size)]
