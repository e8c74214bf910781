from datetime import datetime, timedelta, timezone

from league_bot.utils.week_clock import WEEK, WeekClock, WeekWindow, to_naive_utc

IST = timezone(timedelta(minutes=330))


def test_monday_midnight_local_is_week_start():
    clock = WeekClock()
    window = clock.bounds(datetime(2026, 10, 14, 12, 0, tzinfo=IST))

    assert window.start == datetime(2026, 10, 11, 18, 30)
    assert window.end == datetime(2026, 10, 18, 18, 30)
    assert window.end - window.start == WEEK


def test_sunday_night_and_monday_morning_are_different_weeks():
    clock = WeekClock()
    sunday = datetime(2026, 10, 18, 23, 59, 59, 999000, tzinfo=IST)
    monday = datetime(2026, 10, 19, 0, 0, 0, 1000, tzinfo=IST)

    a = clock.bounds(sunday)
    b = clock.bounds(monday)

    assert b.start - a.start == timedelta(days=7)
    assert a.end == b.start
    assert a.contains(sunday) and not a.contains(monday)
    assert b.contains(monday)


def test_bounds_is_pure():
    clock = WeekClock()
    ts = datetime(2026, 10, 16, 3, 0, tzinfo=timezone.utc)
    assert clock.bounds(ts) == clock.bounds(ts)


def test_naive_input_is_treated_as_utc():
    clock = WeekClock()
    # Sunday 18:29 UTC is still Sunday 23:59 IST
    before = clock.bounds(datetime(2026, 10, 18, 18, 29))
    after = clock.bounds(datetime(2026, 10, 18, 18, 30))

    assert before.start == datetime(2026, 10, 11, 18, 30)
    assert after.start == datetime(2026, 10, 18, 18, 30)


def test_zero_offset():
    clock = WeekClock(utc_offset_minutes=0)
    window = clock.bounds(datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc))
    assert window.start == datetime(2026, 10, 12, 0, 0)


def test_fixed_clock_previous_and_current():
    clock = WeekClock.fixed(datetime(2026, 10, 14, 12, 0, tzinfo=IST))

    current = clock.current_week()
    previous = clock.previous_week()

    assert clock.now() == datetime(2026, 10, 14, 6, 30)
    assert previous.end == current.start
    assert previous.next() == current
    assert current.previous() == previous


def test_window_last_instant():
    window = WeekWindow(start=datetime(2026, 10, 11, 18, 30), end=datetime(2026, 10, 18, 18, 30))
    assert window.contains(window.last_instant)
    assert not window.contains(window.end)


def test_to_naive_utc():
    aware = datetime(2026, 10, 12, 0, 0, tzinfo=IST)
    assert to_naive_utc(aware) == datetime(2026, 10, 11, 18, 30)
    naive = datetime(2026, 10, 12, 0, 0)
    assert to_naive_utc(naive) is naive
