from flask import Blueprint, g

from marketplace.db import get_session
from marketplace.routes.utils import auth_required, success_response
from marketplace.services.analytics_service import AnalyticsService

analytics_bp = Blueprint("analytics", __name__)


@analytics_bp.route("/vendor", methods=["GET"])
@auth_required("vendor", "admin")
def vendor_analytics():
    with get_session() as session:
        summary = AnalyticsService(session).vendor_summary(g.current_user)
    return success_response(summary)


@analytics_bp.route("/admin", methods=["GET"])
@auth_required("admin")
def admin_analytics():
    with get_session() as session:
        summary = AnalyticsService(session).admin_summary()
    return success_response(summary)
