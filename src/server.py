"""Flask API for the document generation pipeline.

Read-only views over the stored pipeline records, plus work item creation
from an order and run requests that go to the background worker pool.
"""

import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS

from src.config import settings
from src.errors import (
    PipelineError,
    create_error_response,
    http_status_for,
    log_error_with_context,
)
from src.graphs.orchestrator import PipelineOrchestrator
from src.memory.store import SourceStore
from src.nodes.intake import create_work_item
from src.reporting.progress import build_timeline
from src.state.models import AcademicWork, GenericOutline
from src.workers.pool import BackgroundLoop, PipelineWorkerPool

logger = logging.getLogger(__name__)

# CORS configuration - restrict to local development origins
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5000",
    "http://127.0.0.1:5000",
]

MAX_BATCH_SIZE = 500


class PipelineRuntime:
    """Store, orchestrator and worker pool living on a background event loop."""

    def __init__(
        self,
        store: SourceStore,
        orchestrator: PipelineOrchestrator,
        concurrency: int | None = None,
        queue_size: int | None = None,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.loop = BackgroundLoop()
        self.pool = PipelineWorkerPool(orchestrator.run, concurrency, queue_size)
        self.loop.run(self.pool.start())

    def call(self, coro):
        return self.loop.run(coro)

    async def enqueue(self, work_item_ids: list[str]) -> list[str]:
        """Queue work items without waiting; raises QueueFullError when full."""
        for work_item_id in work_item_ids:
            await self.store.require_work_item(work_item_id)
        queued = []
        for work_item_id in work_item_ids:
            future = self.pool.submit_nowait(work_item_id)
            future.add_done_callback(_log_outcome(work_item_id))
            queued.append(work_item_id)
        return queued

    def close(self) -> None:
        self.loop.run(self.pool.stop(drain=False))
        self.loop.close()


def _log_outcome(work_item_id: str):
    def callback(future) -> None:
        if future.cancelled():
            logger.warning(f"API: run of {work_item_id} was cancelled")
        elif future.exception() is not None:
            log_error_with_context(
                future.exception(),
                stage="background_run",
                context={"work_item_id": work_item_id},
                level=logging.WARNING,
            )
        else:
            logger.info(f"API: run of {work_item_id} finished: {future.result().status.value}")

    return callback


def create_app(runtime: PipelineRuntime | None = None) -> Flask:
    """
    Create the Flask application.

    Args:
        runtime: Pipeline runtime; one wired to the configured services is
            created when omitted.
    """
    if runtime is None:
        store = SourceStore()
        runtime = PipelineRuntime(store, PipelineOrchestrator.from_settings(store))

    app = Flask(__name__)
    app.config["PIPELINE_RUNTIME"] = runtime
    CORS(app, origins=CORS_ORIGINS)
    store = runtime.store

    @app.errorhandler(PipelineError)
    def handle_pipeline_error(error: PipelineError):
        return jsonify(create_error_response(error)), http_status_for(error)

    def not_found(what: str, work_item_id: str):
        return jsonify({"error": f"{what} not found for work item {work_item_id}"}), 404

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "ok",
            "config_errors": settings.validate(),
            "workers": runtime.pool.concurrency,
            "queued": runtime.pool.pending,
            "active": runtime.pool.active,
        })

    # -------------------------------------------------------------------------
    # Work item views
    # -------------------------------------------------------------------------

    @app.route("/api/work-items/<work_item_id>")
    def get_work_item(work_item_id):
        item = runtime.call(store.require_work_item(work_item_id))
        return jsonify(item.model_dump(mode="json"))

    @app.route("/api/work-items/<work_item_id>/search-results")
    def get_search_results(work_item_id):
        record = runtime.call(store.get_search_result(work_item_id))
        if record is None:
            return not_found("Search results", work_item_id)
        return jsonify(record.model_dump(mode="json"))

    @app.route("/api/work-items/<work_item_id>/scraped-sources")
    def get_scraped_sources(work_item_id):
        sources = runtime.call(store.list_scraped_sources(work_item_id))
        include_text = request.args.get("include_text") == "true"
        exclude = None if include_text else {"text"}
        return jsonify([s.model_dump(mode="json", exclude=exclude) for s in sources])

    @app.route("/api/work-items/<work_item_id>/selected-sources")
    def get_selected_sources(work_item_id):
        selection = runtime.call(store.get_selection(work_item_id))
        if selection is None:
            return not_found("Source selection", work_item_id)
        sources = runtime.call(store.list_selected_sources(work_item_id))
        return jsonify({
            "selection": selection.model_dump(mode="json", exclude={"prompt"}),
            "sources": [s.model_dump(mode="json", exclude={"text"}) for s in sources],
        })

    @app.route("/api/work-items/<work_item_id>/structure")
    def get_structure(work_item_id):
        outline = runtime.call(store.get_outline(work_item_id))
        if outline is None:
            return not_found("Structure", work_item_id)
        if isinstance(outline, AcademicWork):
            return jsonify(outline.model_dump(
                mode="json",
                include={"kind", "work_item_id", "work_type", "status",
                         "table_of_contents", "full_structure", "error_message"},
            ) | {"chapters": [
                {"number": ch.number, "title": ch.title, "kind": ch.kind.value,
                 "status": ch.status.value}
                for ch in outline.chapters
            ]})
        return jsonify(outline.model_dump(mode="json"))

    @app.route("/api/work-items/<work_item_id>/content")
    def get_content(work_item_id):
        outline = runtime.call(store.get_outline(work_item_id))
        if isinstance(outline, AcademicWork):
            if not outline.is_completed:
                return not_found("Finished document", work_item_id)
            return jsonify({
                "work_item_id": work_item_id,
                "kind": outline.kind,
                "content": outline.final_document,
                "total_characters": outline.total_character_count,
                "total_tokens": outline.total_tokens_used,
            })
        content = runtime.call(store.get_generated_content(work_item_id))
        if content is None or not isinstance(outline, GenericOutline):
            return not_found("Content", work_item_id)
        return jsonify(content.model_dump(mode="json") | {"kind": outline.kind})

    @app.route("/api/work-items/<work_item_id>/timeline")
    def get_timeline(work_item_id):
        timeline = runtime.call(build_timeline(store, work_item_id))
        return jsonify(timeline.model_dump(mode="json"))

    # -------------------------------------------------------------------------
    # Creation and runs
    # -------------------------------------------------------------------------

    @app.route("/api/orders/<order_id>/items/<item_id>/work-item", methods=["POST"])
    def create_from_order(order_id, item_id):
        item = runtime.call(create_work_item(store, order_id, item_id))
        return jsonify(item.model_dump(mode="json")), 201

    @app.route("/api/work-items/<work_item_id>/run", methods=["POST"])
    def run_work_item(work_item_id):
        queued = runtime.call(runtime.enqueue([work_item_id]))
        return jsonify({"queued": queued}), 202

    @app.route("/api/work-items/batch", methods=["POST"])
    def run_batch():
        payload = request.get_json(silent=True) or {}
        ids = payload.get("work_item_ids")
        if not isinstance(ids, list) or not ids or not all(isinstance(i, str) for i in ids):
            return jsonify({"error": "work_item_ids must be a non-empty list of ids"}), 400
        if len(ids) > MAX_BATCH_SIZE:
            return jsonify({"error": f"At most {MAX_BATCH_SIZE} work items per batch"}), 400
        queued = runtime.call(runtime.enqueue(list(dict.fromkeys(ids))))
        return jsonify({"queued": queued}), 202

    return app


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    port = int(os.environ.get("PORT", 5001))
    print("\n" + "=" * 60)
    print("Document Generation API")
    print("=" * 60)
    print(f"\nListening on http://127.0.0.1:{port}")
    print("\nPress Ctrl+C to stop\n")
    create_app().run(port=port, host="0.0.0.0")
