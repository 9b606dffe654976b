# core/roster.py
from django.conf import settings

DEFAULT_SALESPERSONS = sorted([
    {'id': 'dale', 'name': 'Dale', 'initials': 'DA'},
    {'id': 'justin', 'name': 'Justin', 'initials': 'JU'},
    {'id': 'karen', 'name': 'Karen', 'initials': 'KA'},
    {'id': 'meghan', 'name': 'Meghan', 'initials': 'ME'},
    {'id': 'pat', 'name': 'Pat', 'initials': 'PA'},
    {'id': 'rickielee', 'name': 'Rickie-Lee', 'initials': 'RL'},
    {'id': 'roberta', 'name': 'Roberta', 'initials': 'RO'},
    {'id': 'shane', 'name': 'Shane', 'initials': 'SH'},
    {'id': 'steve', 'name': 'Steve', 'initials': 'ST'},
    {'id': 'wade', 'name': 'Wade', 'initials': 'WA'},
    {'id': 'sam', 'name': 'Sam', 'initials': 'SA'},
], key=lambda sp: sp['name'].lower())

DEFAULT_PROJECT_TYPES = [
    {'id': 'railing', 'name': 'Railing', 'icon': 'railing.png'},
    {'id': 'deck', 'name': 'Deck', 'icon': 'deck.png'},
    {'id': 'hardscapes', 'name': 'Hardscapes', 'icon': 'hardscapes.png'},
    {'id': 'fence', 'name': 'Fence', 'icon': 'fence.png'},
    {'id': 'pergola', 'name': 'Pergola', 'icon': 'pergola.png'},
    {'id': 'turf', 'name': 'Turf', 'icon': 'turf.png'},
]

DEFAULT_LOCATIONS = [
    {'id': 'regina', 'name': 'Regina', 'abbreviation': 'RGNA'},
    {'id': 'saskatoon', 'name': 'Saskatoon', 'abbreviation': 'SKTN'},
]

DEFAULT_WEEKLY_GOAL = 60


def get_salespersons():
    return getattr(settings, 'SALESPERSONS', DEFAULT_SALESPERSONS)


def get_project_types():
    return getattr(settings, 'PROJECT_TYPES', DEFAULT_PROJECT_TYPES)


def get_locations():
    return getattr(settings, 'LOCATIONS', DEFAULT_LOCATIONS)


def get_default_weekly_goal():
    return getattr(settings, 'DEFAULT_WEEKLY_GOAL', DEFAULT_WEEKLY_GOAL)


def _find(entries, entry_id):
    if not entry_id:
        return None
    key = str(entry_id).lower()
    for entry in entries:
        if entry['id'] == key:
            return entry
    return None


def find_salesperson(salesperson_id):
    return _find(get_salespersons(), salesperson_id)


def find_project_type(project_type_id):
    return _find(get_project_types(), project_type_id)


def find_location(location_id):
    """Location ids are matched case-insensitively ('REGINA' == 'regina')."""
    return _find(get_locations(), location_id)
