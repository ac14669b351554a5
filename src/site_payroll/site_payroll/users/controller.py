from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..common.web import current_actor, json_body, login_required, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["user_id"] = s_user.user_id
        session["name"] = s_user.name
        session["role"] = s_user.role.value

        return ok(s_user, message="Logged in")

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok(message="Logged out")

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        actor = current_actor()
        return ok({"user_id": actor.user_id, "name": session.get("name"), "role": actor.role})
