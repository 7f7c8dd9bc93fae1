"""
入金ステータス参照用の読み取り専用HTTPエンドポイント

表示レイヤーはここから per-flat ステータスと集計を取得する。
スナップショット取得に失敗した場合は 503 + status=unknown を返し、
pending とは区別する。
"""

import os
from typing import Callable, Dict

from flask import Flask, jsonify, request

from aggregator import all_collection_statistics, collection_statistics
from config_loader import load_status_config
from dues_models import LedgerSnapshot, SnapshotUnavailableError
from ledger_client import LedgerClient
from status_main import build_report


def _collection_item(c, summary=None) -> Dict:
    item = {
        "id": c.id,
        "label": c.label,
        "due_date": c.due_date.isoformat() if c.due_date else None,
        "amount_due": c.amount_due,
        "daily_fine": c.daily_fine,
        "is_active": c.is_active,
    }
    if summary is not None:
        item["summary"] = summary.to_dict()
    return item


def default_snapshot_provider(apartment_id: str) -> LedgerSnapshot:
    cfg = load_status_config().get("ledger", {})
    client = LedgerClient(
        os.getenv("LEDGER_API_URL", ""),
        os.getenv("LEDGER_API_KEY", ""),
        timeout=cfg.get("timeout_seconds", 15),
        page_size=cfg.get("page_size", 1000),
    )
    return client.fetch_snapshot(apartment_id, os.getenv("LEDGER_ACCESS_CODE"))


def create_app(snapshot_provider: Callable[[str], LedgerSnapshot] = default_snapshot_provider) -> Flask:
    app = Flask(__name__)

    def _unknown(error: Exception):
        return jsonify({"status": "unknown", "error": str(error)}), 503

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/apartments/<apartment_id>/collections", methods=["GET"])
    def list_collections(apartment_id):
        try:
            snapshot = snapshot_provider(apartment_id)
        except SnapshotUnavailableError as e:
            return _unknown(e)
        stats = all_collection_statistics(snapshot, load_status_config(), include_archived=True)
        return jsonify({
            "active": [_collection_item(c, s) for c, s in stats if c.is_active],
            "archived": [_collection_item(c, s) for c, s in stats if not c.is_active],
        })

    @app.route("/apartments/<apartment_id>/status", methods=["GET"])
    def collection_status(apartment_id):
        # リクエスト毎にスナップショットを取り直し、一から再計算する
        try:
            snapshot = snapshot_provider(apartment_id)
        except SnapshotUnavailableError as e:
            return _unknown(e)

        collection_id = request.args.get("collection_id")
        collection = snapshot.find_collection(collection_id) if collection_id else snapshot.default_collection()
        if collection is None:
            return jsonify({"error": "collection not found", "collection_id": collection_id}), 404

        blocks, summary = collection_statistics(snapshot, collection, load_status_config())
        return jsonify(build_report(collection, blocks, summary))

    return app


app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
