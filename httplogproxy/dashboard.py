"""Dashboard web API for managing applications and browsing HTTP logs."""

from __future__ import annotations

import hashlib
import os
import time
from datetime import datetime
from typing import Any, Mapping

from flask import Flask, Response, jsonify, render_template, request

from .forms import (
    AppListItem,
    AppListReq,
    AppListResp,
    EditAppReq,
    HttpLogListItem,
    HttpLogListReq,
    HttpLogListResp,
    NewAppReq,
    NewAppResp,
    ValidationError,
    format_timestamp,
)
from .logger import with_context
from .storage.models import AppModel, SearchHttpLogListParam


def make_app_id(target: str) -> str:
    """Derive a fresh application id from *target* and the current time."""
    digest = hashlib.md5()
    digest.update(target.encode("utf-8"))
    digest.update(f"{datetime.now()} {time.time_ns()}".encode("utf-8"))
    return digest.hexdigest()


def _request_data() -> Mapping[str, Any]:
    """Return the request payload, JSON or form, depending on the content type."""
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("invalid JSON body")
        return data
    return request.values


def _abort(status: int, exc: Exception) -> Response:
    with_context({}).info("dashboard error %d: %s", status, exc)
    return Response("", status=status)


class DashboardHandler:
    """Request handlers of the dashboard, bound to a storage provider."""

    def __init__(self, storage) -> None:
        self.storage = storage

    def register(self, app: Flask) -> None:
        """Attach every dashboard route to *app*."""
        app.add_url_rule("/dashboard/home", "home_page", self.home_page, methods=["GET"])
        app.add_url_rule("/dashboard/app/list", "app_list", self.app_list, methods=["POST"])
        app.add_url_rule("/dashboard/app/new", "new_app", self.new_app, methods=["POST"])
        app.add_url_rule(
            "/dashboard/app/del/<app_id>", "del_app", self.del_app, methods=["POST"]
        )
        app.add_url_rule("/dashboard/app/edit", "edit_app", self.edit_app, methods=["POST"])
        app.add_url_rule(
            "/dashboard/http_log/<request_id>",
            "http_log_info",
            self.http_log_info,
            methods=["GET"],
        )
        app.add_url_rule(
            "/dashboard/http_log/list", "http_log_list", self.http_log_list, methods=["POST"]
        )

    def home_page(self):
        return render_template("home_page.html")

    def app_list(self):
        try:
            req = AppListReq.from_mapping(_request_data())
        except ValidationError as exc:
            return _abort(400, exc)
        try:
            apps = self.storage.search_app_list(req.name, req.id)
        except Exception as exc:
            return _abort(500, exc)
        resp = AppListResp(
            data=[
                AppListItem(
                    id=app.id,
                    name=app.name,
                    target=app.target,
                    create_at=format_timestamp(app.create_at),
                    update_at=format_timestamp(app.update_at),
                )
                for app in apps
            ]
        )
        return jsonify(resp.to_dict())

    def new_app(self):
        try:
            req = NewAppReq.from_mapping(_request_data())
        except ValidationError as exc:
            return _abort(400, exc)
        now = int(time.time())
        app = AppModel(
            id=make_app_id(req.target),
            name=req.name,
            target=req.target,
            create_at=now,
            update_at=now,
        )
        try:
            self.storage.add_app(app)
        except Exception as exc:
            return _abort(500, exc)
        resp = NewAppResp(
            id=app.id,
            name=app.name,
            target=app.name,
            create_at=format_timestamp(app.create_at),
            update_at=format_timestamp(app.update_at),
        )
        return jsonify(resp.to_dict())

    def del_app(self, app_id: str):
        if not app_id:
            return _abort(400, ValueError("missing app_id"))
        try:
            self.storage.del_app(app_id)
        except Exception as exc:
            return _abort(500, exc)
        return jsonify({"count": 1})

    def edit_app(self):
        try:
            req = EditAppReq.from_mapping(_request_data())
        except ValidationError as exc:
            return _abort(400, exc)
        try:
            app = self.storage.get_app_by_id(req.id)
        except Exception as exc:
            return _abort(500, exc)
        app.name = req.name
        app.target = req.target
        app.update_at = int(time.time())
        try:
            self.storage.update_app(app)
        except Exception as exc:
            return _abort(500, exc)
        return jsonify({})

    def http_log_info(self, request_id: str):
        if not request_id:
            return _abort(400, ValueError("missing request_id"))
        try:
            log = self.storage.get_http_log_by_request_id(request_id)
        except Exception as exc:
            return _abort(500, exc)
        return jsonify(log.to_dict())

    def http_log_list(self):
        try:
            req = HttpLogListReq.from_mapping(_request_data())
        except ValidationError as exc:
            return _abort(400, exc)
        param = SearchHttpLogListParam(
            keyword=req.keyword,
            start_time=req.start_time,
            end_time=req.end_time,
            size=req.size,
            page=req.page,
        )
        try:
            total, logs = self.storage.search_http_log_list(req.app_id, param)
        except Exception as exc:
            return _abort(500, exc)
        resp = HttpLogListResp(
            total=total,
            data=[
                HttpLogListItem(
                    create_at=format_timestamp(log.create_at),
                    request_id=log.request_id,
                    request_url=log.request_url,
                    request_method=log.request_method,
                    response_code=log.response_code,
                )
                for log in logs
            ],
        )
        return jsonify(resp.to_dict())


def create_dashboard(storage, template_folder="templates") -> Flask:
    """Build the dashboard application, with ``[[ ]]`` as template variable delimiters."""
    app = Flask(__name__, template_folder=os.path.abspath(template_folder))
    app.jinja_env.variable_start_string = "[["
    app.jinja_env.variable_end_string = "]]"
    DashboardHandler(storage).register(app)
    return app