# goals/aggregation.py
from collections import Counter, defaultdict
from datetime import datetime
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('id', 'salesperson_id', 'project_type_id', 'location', 'timestamp')

MONDAY = 0


def local_time(timestamp):
    """Convert an aware timestamp to the board's local time zone."""
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp)
    if timezone.is_naive(timestamp):
        return timestamp
    return timezone.localtime(timestamp)


def valid_events(events, include_archived=False):
    """
    Drop events that are missing a required field or carry an unreadable timestamp.

    Bad events are logged and skipped, never raised.
    """
    valid = []
    for event in events or []:
        try:
            missing = [field for field in REQUIRED_FIELDS if event.get(field) in (None, '')]
            if missing:
                logger.warning(f"Excluding project event {event.get('id')}: missing {', '.join(missing)}")
                continue
            local_time(event['timestamp'])
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Excluding unreadable project event {event!r}: {e}")
            continue
        if event.get('archived') and not include_archived:
            continue
        valid.append(event)
    return valid


def count_by_location(events, location_id):
    return sum(1 for event in valid_events(events) if event['location'] == location_id)


def location_totals(events, locations):
    counts = Counter(event['location'] for event in valid_events(events))
    return [{'location': location, 'count': counts.get(location['id'], 0)} for location in locations]


def leaderboard(events, roster):
    """
    Per-salesperson counts for every roster member, zero counts included.

    Sorted by count descending. Ties keep roster order (the sort is stable), so
    with the default roster equal counts are listed alphabetically. Projects
    logged by someone since removed from the roster get a row after the roster
    rows, so the standings always add up to the live total.
    """
    events = valid_events(events)
    counts = Counter(event['salesperson_id'] for event in events)
    standings = [{'salesperson': sp, 'count': counts.pop(sp['id'], 0)} for sp in roster]

    for salesperson_id, count in counts.items():
        name = next(
            (e.get('salesperson_name') for e in events if e['salesperson_id'] == salesperson_id),
            None,
        ) or salesperson_id
        standings.append({
            'salesperson': {'id': salesperson_id, 'name': name, 'initials': '', 'on_roster': False},
            'count': count,
        })
    return sorted(standings, key=lambda row: row['count'], reverse=True)


def project_type_popularity(events, project_types):
    counts = Counter(event['project_type_id'] for event in valid_events(events))
    popularity = [
        {'project_type': pt, 'count': counts[pt['id']]}
        for pt in project_types
        if counts.get(pt['id'], 0) > 0
    ]
    return sorted(popularity, key=lambda row: row['count'], reverse=True)


def instant_stats(events, roster, project_types):
    """
    Stats snapshot used for achievement evaluation.

    The live set is the current week by construction (rollover clears it), so
    weekly_projects is simply the number of live events.

    Returns:
        dict: weekly_projects, monday_projects, hourly_max,
              all_salespeople_day, all_project_types_day
    """
    events = valid_events(events)

    hourly = Counter()
    people_by_day = defaultdict(set)
    types_by_day = defaultdict(set)
    monday_projects = 0

    for event in events:
        local = local_time(event['timestamp'])
        day = local.date()
        if local.weekday() == MONDAY:
            monday_projects += 1
        hourly[(day, local.hour)] += 1
        people_by_day[day].add(event['salesperson_id'])
        types_by_day[day].add(event['project_type_id'])

    roster_ids = {sp['id'] for sp in roster}
    type_ids = {pt['id'] for pt in project_types}

    return {
        'weekly_projects': len(events),
        'monday_projects': monday_projects,
        'hourly_max': max(hourly.values()) if hourly else 0,
        'all_salespeople_day': bool(roster_ids) and any(
            roster_ids <= seen for seen in people_by_day.values()
        ),
        'all_project_types_day': bool(type_ids) and any(
            type_ids <= seen for seen in types_by_day.values()
        ),
    }


def top_salesperson(events, include_archived=False):
    """
    (salesperson_id, count) with the most events, or (None, 0) for an empty list.

    Only a strictly greater count takes the lead, so on a tie the salesperson
    seen first in the events' iteration order wins.
    """
    counts = {}
    for event in valid_events(events, include_archived=include_archived):
        counts[event['salesperson_id']] = counts.get(event['salesperson_id'], 0) + 1

    top_id, top_count = None, 0
    for salesperson_id, count in counts.items():
        if count > top_count:
            top_id, top_count = salesperson_id, count
    return top_id, top_count


def monthly_champion(events, month):
    """
    Champion of a calendar month given as 'YYYY-MM'.

    Archived projects count too: the month spans several rolled-over weeks.
    """
    in_month = []
    for event in events or []:
        try:
            if local_time(event['timestamp']).strftime('%Y-%m') == month:
                in_month.append(event)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping project {event.get('id')} in champion count: {e}")

    champion_id, projects = top_salesperson(in_month, include_archived=True)
    if champion_id is None:
        return None

    name = next(
        (e.get('salesperson_name') for e in in_month if e.get('salesperson_id') == champion_id),
        champion_id,
    )
    return {
        'month': month,
        'salesperson_id': champion_id,
        'salesperson_name': name,
        'projects': projects,
    }
