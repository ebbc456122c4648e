from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, url_for

from app.crm.auth import require_login
from app.crm.modules.clients.admin import dashboard_context
from app.crm.modules.clients.gateway import GatewayError
from app.crm.modules.clients.records import ClientValidationError, fields_from_payload
from app.crm.modules.clients.workspace import ensure_workspace
from app.crm.modules.insights.gemini_client import GenerationError, GenerationNotConfigured
from app.crm.modules.insights.service import AnalysisInProgress, InsightService, runner_for

bp = Blueprint("insights", __name__)


def insight_service() -> InsightService:
    return InsightService(
        current_app.extensions["generative_gateway"],
        model=current_app.config["GEMINI_MODEL"],
        sample_count=int(current_app.config.get("SAMPLE_CLIENT_COUNT") or 5),
    )


@bp.post("/dashboard/analysis")
@require_login
def dashboard_analysis():
    ws = ensure_workspace()
    analysis = None
    try:
        result = runner_for(g.current_user.id).run(insight_service(), ws.clients)
    except AnalysisInProgress:
        flash("An analysis is already running.", "warning")
    else:
        if result.failed:
            flash(result.text, "danger")
        else:
            analysis = result.text
    return render_template("crm/dashboard.html", **dashboard_context(ws, analysis=analysis))


@bp.post("/clients/samples")
@require_login
def clients_samples():
    ws = ensure_workspace()
    try:
        samples = insight_service().generate_samples()
    except GenerationNotConfigured:
        flash("AI features are not configured.", "danger")
        return redirect(url_for("clients.clients_list"))
    except GenerationError as e:
        current_app.logger.warning("Sample generation failed: %s", e)
        flash("Error generating sample clients.", "danger")
        return redirect(url_for("clients.clients_list"))

    added = 0
    failed = False
    try:
        for sample in samples:
            try:
                fields = fields_from_payload(sample.as_payload())
            except ClientValidationError as e:
                current_app.logger.warning("Skipping generated sample %r: %s", sample.name, e)
                continue
            ws.repository.create(fields)
            added += 1
    except GatewayError:
        failed = True
        flash("Error creating client.", "danger")

    if added:
        flash(f"{added} sample clients added.", "success")
    elif not samples:
        flash("No sample clients were generated.", "warning")
    elif not failed:
        flash("No valid sample clients were generated.", "warning")
    return redirect(url_for("clients.clients_list"))
