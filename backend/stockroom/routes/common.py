# Overview: Helpers shared by the JSON blueprints.

from flask import jsonify, request

from ..errors import ValidationError
from ..services.scope_service import ScopeFilter
from ..time_utils import end_of_day, parse_iso_datetime


def respond(result):
    """ActionResult -> JSON response with its status code."""
    return jsonify(dict(result)), result.status_code


def payload():
    return request.get_json(silent=True)


def scope_from_args() -> ScopeFilter:
    """?organization_id=&branch_id= (honoured for super admins only)."""
    return ScopeFilter.from_mapping(request.args)


def date_range_from_args():
    """?date_from=YYYY-MM-DD&date_to=YYYY-MM-DD, date_to inclusive."""
    try:
        return (
            parse_iso_datetime(request.args.get("date_from")),
            end_of_day(request.args.get("date_to")),
        )
    except ValueError:
        raise ValidationError("Invalid date filter", details=["date_from/date_to must be ISO dates"]) from None
