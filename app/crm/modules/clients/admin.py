from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.crm.auth import require_login
from app.crm.modules.clients.gateway import GatewayError
from app.crm.modules.clients.records import (
    CLIENT_STATUSES,
    DEFAULT_STATUS,
    STATUS_LABELS,
    Client,
    ClientValidationError,
    fields_from_payload,
)
from app.crm.modules.clients.repository import ClientRepository
from app.crm.modules.clients.stats import status_breakdown
from app.crm.modules.clients.workspace import CrmWorkspace, ensure_workspace
from app.crm.modules.insights.service import runner_for

bp = Blueprint("clients", __name__)

FORM_FIELDS = ("name", "email", "phone", "company", "status", "notes")


def _workspace() -> CrmWorkspace:
    ws = ensure_workspace()
    if ws.load_error:
        flash(ws.load_error, "danger")
    return ws


def _repository(ws: CrmWorkspace) -> ClientRepository:
    if ws.repository is None:
        # require_login ran first, so a present session always has one.
        raise RuntimeError("No client repository for this request")
    return ws.repository


def _find_client(ws: CrmWorkspace, client_id: str) -> Client | None:
    return next((c for c in ws.clients if c.id == client_id), None)


def _form_payload() -> dict[str, str | None]:
    return {k: request.form.get(k) for k in FORM_FIELDS}


def dashboard_context(ws: CrmWorkspace, **extra) -> dict:
    stats = ws.stats
    return {
        "stats": stats,
        "breakdown": status_breakdown(stats),
        "has_clients": bool(ws.clients),
        "is_loading": runner_for(g.current_user.id).is_loading,
        "analysis": None,
        **extra,
    }


# ---------- Dashboard ----------
@bp.get("/dashboard")
@require_login
def dashboard():
    ws = _workspace()
    return render_template("crm/dashboard.html", **dashboard_context(ws))


@bp.get("/dashboard/stats.json")
@require_login
def dashboard_stats():
    ws = ensure_workspace()
    return ws.stats.as_dict()


# ---------- List ----------
@bp.get("/clients")
@require_login
def clients_list():
    ws = _workspace()
    return render_template("crm/clients.html", clients=ws.clients, status_labels=STATUS_LABELS)


# ---------- New ----------
@bp.get("/clients/new")
@require_login
def clients_new_get():
    return render_template(
        "crm/client_form.html",
        client=None,
        values={"status": DEFAULT_STATUS},
        statuses=CLIENT_STATUSES,
        status_labels=STATUS_LABELS,
    )


@bp.post("/clients/new")
@require_login
def clients_new_post():
    ws = ensure_workspace()
    payload = _form_payload()
    try:
        fields = fields_from_payload(payload)
    except ClientValidationError as e:
        for msg in e.errors:
            flash(msg, "danger")
        return redirect(url_for("clients.clients_new_get"))

    try:
        _repository(ws).create(fields)
    except GatewayError:
        current_app.logger.error("Client create failed (request_id=%s)", getattr(g, "request_id", None))
        flash("Error creating client.", "danger")
        return redirect(url_for("clients.clients_new_get"))

    flash("Client created.", "success")
    return redirect(url_for("clients.clients_list"))


# ---------- Edit ----------
@bp.get("/clients/<client_id>/edit")
@require_login
def client_edit_get(client_id: str):
    ws = _workspace()
    client = _find_client(ws, client_id)
    if not client:
        abort(404)
    return render_template(
        "crm/client_form.html",
        client=client,
        values=client.fields.as_row(),
        statuses=CLIENT_STATUSES,
        status_labels=STATUS_LABELS,
    )


@bp.post("/clients/<client_id>/edit")
@require_login
def client_edit_post(client_id: str):
    ws = ensure_workspace()
    payload = _form_payload()
    try:
        fields = fields_from_payload(payload)
    except ClientValidationError as e:
        for msg in e.errors:
            flash(msg, "danger")
        return redirect(url_for("clients.client_edit_get", client_id=client_id))

    try:
        _repository(ws).update(client_id, fields)
    except GatewayError:
        current_app.logger.error("Client update failed (id=%s request_id=%s)", client_id, getattr(g, "request_id", None))
        flash("Error updating client.", "danger")
        return redirect(url_for("clients.client_edit_get", client_id=client_id))

    flash("Client updated.", "success")
    return redirect(url_for("clients.clients_list"))


# ---------- Delete ----------
@bp.get("/clients/<client_id>/delete")
@require_login
def client_delete_get(client_id: str):
    ws = _workspace()
    client = _find_client(ws, client_id)
    if not client:
        abort(404)
    return render_template("crm/client_delete.html", client=client)


@bp.post("/clients/<client_id>/delete")
@require_login
def client_delete_post(client_id: str):
    ws = ensure_workspace()
    try:
        deleted = _repository(ws).delete(client_id, confirm=lambda: request.form.get("confirm") == "yes")
    except GatewayError:
        current_app.logger.error("Client delete failed (id=%s request_id=%s)", client_id, getattr(g, "request_id", None))
        flash("Error deleting client.", "danger")
        return redirect(url_for("clients.clients_list"))

    if deleted:
        flash("Client deleted.", "success")
    else:
        flash("Deletion cancelled.", "info")
    return redirect(url_for("clients.clients_list"))
