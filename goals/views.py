# goals/views.py
import json
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST
from goals.board import SalesBoard
from goals.exceptions import StoreReadError
import logging

logger = logging.getLogger(__name__)


def _read_json(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (UnicodeDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _bad_json():
    return JsonResponse({'success': False, 'error_message': "Request body must be a JSON object"}, status=400)


def _validation_failed(error):
    if hasattr(error, 'error_dict'):
        errors = error.message_dict
    else:
        errors = {'__all__': error.messages}
    return JsonResponse({'success': False, 'errors': errors}, status=400)


def _store_unavailable(error):
    logger.warning(f"Board data unavailable: {error}")
    return JsonResponse({'success': False, 'error_message': str(error)}, status=503)


def _result_response(result, success_status=200):
    return JsonResponse(result, status=success_status if result['success'] else 503)


@csrf_exempt
@require_POST
def log_project(request):
    data = _read_json(request)
    if data is None:
        return _bad_json()

    try:
        result = SalesBoard().log_project(
            data.get('salesperson_id'), data.get('project_type_id'), data.get('location_id')
        )
    except ValidationError as e:
        return _validation_failed(e)

    return _result_response(result, success_status=201)


@require_GET
def leaderboard(request):
    board = SalesBoard()
    return JsonResponse({'leaderboard': board.get_leaderboard(), 'stale': board.state.stale})


@require_GET
def location_totals(request):
    board = SalesBoard()
    return JsonResponse({'locations': board.get_location_totals(), 'stale': board.state.stale})


@require_GET
def project_type_popularity(request):
    board = SalesBoard()
    return JsonResponse({'project_types': board.get_project_type_popularity(), 'stale': board.state.stale})


@require_GET
def stats(request):
    try:
        stats = SalesBoard().get_instant_stats()
        stats['goal_progress'] = round(stats['goal_progress'], 1)
        return JsonResponse(stats)
    except StoreReadError as e:
        return _store_unavailable(e)


@require_GET
def summary(request):
    try:
        return JsonResponse(SalesBoard().get_summary())
    except StoreReadError as e:
        return _store_unavailable(e)


@require_GET
def weekly_records(request):
    try:
        return JsonResponse({'weekly_records': SalesBoard().get_weekly_records()})
    except StoreReadError as e:
        return _store_unavailable(e)


@csrf_exempt
@require_POST
def edit_weekly_record(request, record_id):
    data = _read_json(request)
    if data is None:
        return _bad_json()

    try:
        result = SalesBoard().edit_weekly_record(record_id, data)
    except ValidationError as e:
        return _validation_failed(e)

    if not result['success'] and 'not found' in (result['error_message'] or ''):
        return JsonResponse(result, status=404)
    return _result_response(result)


@csrf_exempt
@require_POST
def rollover(request):
    data = _read_json(request)
    if data is None:
        return _bad_json()

    result = SalesBoard().trigger_manual_rollover(data.get('confirm') is True)
    if not result['success'] and not data.get('confirm'):
        return JsonResponse(result, status=400)
    return _result_response(result)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def weekly_goal(request):
    board = SalesBoard()
    if request.method == "GET":
        try:
            return JsonResponse({'target': board.get_weekly_goal()})
        except StoreReadError as e:
            return _store_unavailable(e)

    data = _read_json(request)
    if data is None:
        return _bad_json()

    try:
        result = board.update_weekly_goal(data.get('target'))
    except ValidationError as e:
        return _validation_failed(e)

    return _result_response(result)
