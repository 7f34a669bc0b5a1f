from .filters import (
    filter_by_category,
    filter_by_time_window,
    is_live_now,
    relative_start_tag,
)
from .grouping import format_event_time, group_by_day, sort_events
from .tags import collect_categories, split_event_tags
from .time_window import FilterSelection, TimeWindow, infer_category, infer_time_window

__all__ = [
    "FilterSelection",
    "TimeWindow",
    "collect_categories",
    "filter_by_category",
    "filter_by_time_window",
    "format_event_time",
    "group_by_day",
    "infer_category",
    "infer_time_window",
    "is_live_now",
    "relative_start_tag",
    "sort_events",
    "split_event_tags",
]
