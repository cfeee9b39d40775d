"""
Feature aggregation: one user-day of raw events -> one DailyFeature row.

Reductions follow the way the collectors populate system_events:
- activity events carry idle periods (action_after == "idle"), the sleep
  summary (duration_sec in seconds), step counts (duration_sec) and HRV
  (message_sentiment);
- location events carry dwell time in duration_sec and a category
  (home, work, commute).
"""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from moodsignal.pipeline.features import EVENT_TYPES, DailyFeature, RawEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CountFeature:
    """
    A count plus whether any event of the counted type was seen.

    Keeps "no events at all" apart from "events, none qualifying".
    """
    value: float
    present: bool

    def resolve(self, collapse_zero: bool = True) -> Optional[float]:
        # Stored rows historically turned every zero count into null
        if collapse_zero:
            return self.value or None
        return self.value if self.present else None


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """[day 00:00:00.000Z, day 23:59:59.999Z]"""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=timezone.utc)
    return start, end


def js_round(value: float) -> int:
    """Half-up rounding, matching the values already in the store."""
    return int(math.floor(value + 0.5))


def _num(value) -> float:
    """None / NaN count as 0."""
    if value is None:
        return 0.0
    value = float(value)
    return 0.0 if math.isnan(value) else value


def _first_activity(events: Sequence[RawEvent], action: str) -> Optional[RawEvent]:
    return next((e for e in events if e.action_after == action), None)


def build_daily_feature(
    user_id: str,
    day: date,
    events: Iterable[RawEvent],
    collapse_zero_counts: bool = True,
) -> DailyFeature:
    """
    Reduce one user's events for one day into a DailyFeature.

    Pure function: same events in, same row out.
    """
    by_type: Dict[str, List[RawEvent]] = {event_type: [] for event_type in EVENT_TYPES}
    for event in events:
        by_type.setdefault(event.event_type, []).append(event)

    app_events = by_type["app_usage"]
    notif_events = by_type["notification"]
    location_events = by_type["location"]
    activity_events = by_type["activity"]
    mood_logs = by_type["mood_log"]

    # Sessions
    session_avg_sec = None
    if app_events:
        session_avg_sec = float(js_round(sum(_num(e.duration_sec) for e in app_events) / len(app_events)))

    idle_dur = sum(_num(e.duration_sec) for e in activity_events if e.action_after == "idle")
    total_dur = sum(_num(e.duration_sec) for e in app_events) + idle_dur
    idle_ratio = idle_dur / total_dur if total_dur > 0 else None

    app_switch_count = CountFeature(
        value=float(sum(1 for e in app_events if "switch" in (e.action_after or "").lower())),
        present=bool(app_events),
    )

    # Notifications
    work_notif_count = CountFeature(
        value=float(sum(1 for e in notif_events if e.notification_sender_type == "work")),
        present=bool(notif_events),
    )
    personal_notif_count = CountFeature(
        value=float(sum(1 for e in notif_events if e.notification_sender_type == "personal")),
        present=bool(notif_events),
    )
    avg_notif_sentiment = None
    if notif_events:
        avg_notif_sentiment = sum(_num(e.message_sentiment) for e in notif_events) / len(notif_events)

    # Location
    location_total = sum(_num(e.duration_sec) for e in location_events)
    time_at_work_ratio = None
    if location_total:
        at_work = sum(_num(e.duration_sec) for e in location_events if (e.location_category or "") == "work")
        time_at_work_ratio = at_work / location_total

    location_switches = CountFeature(
        value=float(max(0, len(location_events) - 1)),
        present=bool(location_events),
    )
    commute_sec = sum(_num(e.duration_sec) for e in location_events if e.location_category == "commute")
    commute_min = CountFeature(value=float(js_round(commute_sec / 60)), present=bool(location_events))

    # Sleep, steps and HRV come from enriched activity events; a zero reading counts as missing
    hours_slept = None
    sleep = _first_activity(activity_events, "sleep_summary")
    if sleep is not None and _num(sleep.duration_sec):
        hours_slept = js_round(_num(sleep.duration_sec) / 3600 * 100) / 100

    steps = None
    steps_event = _first_activity(activity_events, "steps")
    if steps_event is not None:
        steps = _num(steps_event.duration_sec) or None

    hrv = None
    hrv_event = _first_activity(activity_events, "hrv")
    if hrv_event is not None:
        hrv = _num(hrv_event.message_sentiment) or None

    # Label: mean of the day's mood logs
    mood_label = None
    if mood_logs:
        mood_label = js_round(sum(_num(e.mood_rating) for e in mood_logs) / len(mood_logs))

    return DailyFeature(
        user_id=user_id,
        day=day,
        session_avg_sec=session_avg_sec,
        idle_ratio=idle_ratio,
        app_switch_count=app_switch_count.resolve(collapse_zero_counts),
        work_notif_count=work_notif_count.resolve(collapse_zero_counts),
        personal_notif_count=personal_notif_count.resolve(collapse_zero_counts),
        avg_notif_sentiment=avg_notif_sentiment,
        hours_slept=hours_slept,
        steps=steps,
        hrv=hrv,
        time_at_work_ratio=time_at_work_ratio,
        location_switches=location_switches.resolve(collapse_zero_counts),
        commute_min=commute_min.resolve(collapse_zero_counts),
        mood_label=mood_label,
    )


async def aggregate_user_day(events, user_id: str, day: date, collapse_zero_counts: bool = True) -> DailyFeature:
    """Read the user's events for the day from an EventStore and reduce them."""
    start, end = day_bounds(day)
    rows = await events.events_for_user_day(user_id, start, end)
    return build_daily_feature(user_id, day, rows, collapse_zero_counts=collapse_zero_counts)


async def upsert_daily_feature(features, row: DailyFeature) -> None:
    """Overwrite the (user_id, day) row in a FeatureStore."""
    await features.upsert(row)


async def aggregate_all_users_for_day(
    day: date,
    session_factory,
    store_factory: Callable,
    workers: int = 4,
    collapse_zero_counts: bool = True,
) -> List[DailyFeature]:
    """
    Aggregate and upsert every user with events on `day`.

    Users are independent, write-disjoint tasks run on at most `workers`
    concurrent sessions. The first failure cancels the remaining tasks and
    propagates; rows already committed stay committed.

    `store_factory(session)` returns an (EventStore, FeatureStore) pair.
    """
    start, end = day_bounds(day)
    async with session_factory() as session:
        events, _ = store_factory(session)
        user_ids = await events.users_with_events(start, end)

    logger.info("Aggregating %d users for %s with %d workers", len(user_ids), day.isoformat(), workers)
    semaphore = asyncio.Semaphore(max(1, workers))

    async def run_one(user_id: str) -> DailyFeature:
        async with semaphore:
            async with session_factory() as session:
                events, features = store_factory(session)
                row = await aggregate_user_day(events, user_id, day, collapse_zero_counts)
                await upsert_daily_feature(features, row)
                await session.commit()
                logger.debug("Aggregated user %s for %s", user_id, day.isoformat())
                return row

    tasks = [asyncio.create_task(run_one(user_id)) for user_id in user_ids]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
