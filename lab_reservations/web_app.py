from __future__ import annotations

import logging
import secrets
import threading
from collections import OrderedDict
from typing import Any, Callable
from uuid import uuid4

from flask import Flask, abort, jsonify, redirect, render_template, request, session, url_for

from .client import ReservationServiceClient
from .config import AppConfig, load_config
from .controller import ReservationService, ViewController
from .logging_config import setup_logging
from .models import DRAFT_FIELDS, LABORATORIES, TABS
from .time_format import FIRST_PICKER_HOUR, LAST_PICKER_HOUR, picker_hours, to_display_string

SESSION_KEY = "view_session_id"
TAB_TITLES = {
    "current": "Current Reservations",
    "past": "Past Reservations",
    "new": "New Reservation",
}

logger = logging.getLogger(__name__)


def _default_client_factory(config: AppConfig) -> ReservationService:
    return ReservationServiceClient(config.api_url, timeout=config.request_timeout)


def create_app(
    config: AppConfig | None = None,
    client_factory: Callable[[AppConfig], ReservationService] | None = None,
) -> Flask:
    app_config = config or load_config()
    app = Flask(__name__)
    if app_config.secret_key:
        app.secret_key = app_config.secret_key
    else:
        logger.warning("No secret_key configured; using a random key, sessions end on restart")
        app.secret_key = secrets.token_hex(32)
    make_client = client_factory or _default_client_factory
    # Least recently used session first
    controllers: OrderedDict[str, ViewController] = OrderedDict()
    controllers_lock = threading.Lock()
    app.extensions["view_sessions"] = controllers

    async def _session_controller() -> ViewController:
        session_id = session.get(SESSION_KEY)
        with controllers_lock:
            controller = controllers.get(session_id) if session_id else None
            if controller is not None:
                controllers.move_to_end(session_id)
                return controller

            session_id = str(uuid4())
            session[SESSION_KEY] = session_id
            controller = ViewController(make_client(app_config), tz=app_config.timezone)
            controllers[session_id] = controller
            while len(controllers) > app_config.max_sessions:
                evicted, _ = controllers.popitem(last=False)
                logger.info("Evicted view session %s", evicted)

        logger.info("Started view session %s", session_id)
        await controller.start()
        return controller

    @app.template_filter("display_time")
    def display_time(timestamp: str) -> str:
        return to_display_string(timestamp, app_config.timezone)

    @app.get("/")
    async def index() -> str:
        controller = await _session_controller()
        return render_template(
            "index.html",
            state=controller.state,
            tabs=TABS,
            tab_titles=TAB_TITLES,
            laboratories=LABORATORIES,
            picker_hours=picker_hours(),
            first_hour=FIRST_PICKER_HOUR,
            last_hour=LAST_PICKER_HOUR,
            notice=controller.pop_notice(),
        )

    @app.get("/api/state")
    async def get_state() -> Any:
        controller = await _session_controller()
        return jsonify(controller.state.to_dict())

    @app.post("/tabs/<tab>")
    async def select_tab(tab: str) -> Any:
        if tab not in TABS:
            abort(404)
        controller = await _session_controller()
        await controller.select_tab(tab)
        return redirect(url_for("index"))

    @app.post("/past/search")
    async def search_past() -> Any:
        controller = await _session_controller()
        controller.set_date_range(
            start_date=request.form.get("startDate", ""),
            end_date=request.form.get("endDate", ""),
        )
        await controller.load_past()
        return redirect(url_for("index"))

    @app.post("/reservations")
    async def submit_reservation() -> Any:
        controller = await _session_controller()
        form_fields = {name: request.form.get(name, "") for name in DRAFT_FIELDS}
        await controller.submit_reservation(form_fields)
        return redirect(url_for("index"))

    return app


def main() -> None:
    config = load_config()
    setup_logging(config.log_level)
    create_app(config).run()


if __name__ == "__main__":
    main()
