"""
管理費入金ステータスレポート

台帳スナップショットを取得し、選択したコレクションについて
フラットごとの paid / partial / pending を判定して表示する。

使用例:
  dues-status --apartment-id <id>
  dues-status --snapshot export.json --collection-id <id> --json
  dues-status --check
"""

import argparse
import json
import os
import sys
from datetime import datetime
from typing import Dict, List, Optional

from dotenv import load_dotenv

from aggregator import collection_statistics, summarize_blocks
from config_loader import currency_symbol, load_status_config
from dues_models import (
    FLAT_PAID,
    FLAT_PARTIAL,
    FLAT_PENDING,
    BlockStatus,
    CollectionSummary,
    ExpectedCollection,
    LedgerSnapshot,
    SnapshotUnavailableError,
)
from environment_validator import EnvironmentValidator
from ledger_client import LedgerClient
from snapshot_loader import export_snapshot_file, load_snapshot_file


EXIT_OK = 0
EXIT_USAGE = 1
EXIT_STATUS_UNKNOWN = 2

STATUS_ICONS = {FLAT_PAID: "✅", FLAT_PARTIAL: "⚠️", FLAT_PENDING: "⬜"}


def load_snapshot(args, cfg: Dict) -> LedgerSnapshot:
    if args.snapshot:
        if not args.json:
            print(f"\n📂 スナップショットファイルを読み込み中: {args.snapshot}")
        return load_snapshot_file(args.snapshot)

    EnvironmentValidator().ensure_valid()
    ledger_cfg = cfg.get("ledger", {})
    client = LedgerClient(
        os.getenv("LEDGER_API_URL"),
        os.getenv("LEDGER_API_KEY"),
        timeout=ledger_cfg.get("timeout_seconds", 15),
        page_size=ledger_cfg.get("page_size", 1000),
        verbose=not args.json,
    )
    apartment_id = args.apartment_id or os.getenv("APARTMENT_ID")
    raw = client.fetch_raw(apartment_id, os.getenv("LEDGER_ACCESS_CODE"))
    if args.export:
        export_snapshot_file(args.export, raw)
    return LedgerSnapshot.from_dict(raw)


def select_collection(snapshot: LedgerSnapshot, collection_id: Optional[str]) -> Optional[ExpectedCollection]:
    if collection_id:
        return snapshot.find_collection(collection_id)
    return snapshot.default_collection()


def build_report(collection: ExpectedCollection, blocks: List[BlockStatus], summary: CollectionSummary) -> Dict:
    per_block = summarize_blocks(blocks)
    return {
        "collection": {
            "id": collection.id,
            "label": collection.label,
            "payment_type": collection.payment_type,
            "quarter": collection.quarter,
            "financial_year": collection.financial_year,
            "due_date": collection.due_date.isoformat() if collection.due_date else None,
            "amount_due": collection.amount_due,
            "daily_fine": collection.daily_fine,
        },
        "blocks": [
            {
                "block_id": b.block_id,
                "block_name": b.block_name,
                "summary": per_block[b.block_id].to_dict(),
                "flats": [f.to_dict() for f in b.flats],
            }
            for b in blocks
        ],
        "summary": summary.to_dict(),
    }


def print_report(collection: ExpectedCollection, blocks: List[BlockStatus], summary: CollectionSummary,
                 symbol: str, show_reasons: bool = False):
    print("\n" + "=" * 60)
    print(f"📊 {collection.label}")
    due = collection.due_date.isoformat() if collection.due_date else "未設定"
    print(f"   期日: {due} / 基本額: {symbol}{collection.amount_due:,.2f} / 罰金: {symbol}{collection.daily_fine:,.2f}/日")
    print("=" * 60)

    for b in blocks:
        print(f"\n🏢 {b.block_name} ({len(b.flats)}戸)")
        for f in b.flats:
            icon = STATUS_ICONS.get(f.status, "?")
            line = f"  {icon} {f.flat_number:<8} {f.status:<8} {symbol}{f.paid_amount:,.2f} / {symbol}{f.expected_amount:,.2f}"
            if f.most_recent_payment_date:
                line += f"  (最新: {f.most_recent_payment_date.isoformat()} {f.most_recent_payment_status or '-'})"
            print(line)
            if show_reasons and f.reasons:
                print(f"       理由: {', '.join(f.reasons)}")

    counts = summary.counts_by_status
    print("\n" + "-" * 60)
    print(f"✅ 支払済: {counts[FLAT_PAID]}  ⚠️ 一部支払: {counts[FLAT_PARTIAL]}  ⬜ 未払い: {counts[FLAT_PENDING]}")
    print(f"💰 回収額: {symbol}{summary.total_collected:,.2f} / 請求額: {symbol}{summary.total_expected:,.2f}"
          f" ({summary.collection_rate:.1f}%)")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="管理費入金ステータスレポート",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--apartment-id", help="対象アパートメントID (省略時は APARTMENT_ID)")
    parser.add_argument("--collection-id", help="対象コレクションID (省略時は最新の有効コレクション)")
    parser.add_argument("--snapshot", help="ローカルのスナップショットJSONを使用")
    parser.add_argument("--export", help="取得したスナップショットをJSONに保存")
    parser.add_argument("--json", action="store_true", help="JSONで出力")
    parser.add_argument("--show-reasons", action="store_true", help="判定理由を表示")
    parser.add_argument("--check", action="store_true", help="環境変数の検証のみ実行")
    parser.add_argument("--env-file", default=".env", help="環境変数ファイルのパス (デフォルト: .env)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv(args.env_file)

    if args.check:
        results = EnvironmentValidator().validate_all()
        return EXIT_OK if results["status"] == "pass" else EXIT_USAGE

    cfg = load_status_config()
    if not args.json:
        print("=== 入金ステータス集計を開始 ===")
        print(f"実行時刻: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    try:
        snapshot = load_snapshot(args, cfg)
    except (SnapshotUnavailableError, EnvironmentError) as e:
        # 取得失敗は pending ではなく「ステータス不明」
        if args.json:
            print(json.dumps({"status": "unknown", "error": str(e)}, ensure_ascii=False))
        else:
            print(f"\n❓ ステータス不明: 台帳データを取得できませんでした ({e})")
        return EXIT_STATUS_UNKNOWN

    collection = select_collection(snapshot, args.collection_id)
    if collection is None:
        if args.json:
            print(json.dumps({"error": "collection not found", "collection_id": args.collection_id}))
            return EXIT_USAGE
        print(f"❌ 対象コレクションがありません: {args.collection_id or '(有効なコレクションなし)'}")
        return EXIT_USAGE

    blocks, summary = collection_statistics(snapshot, collection, cfg)

    if args.json:
        print(json.dumps(build_report(collection, blocks, summary), ensure_ascii=False, indent=2))
    else:
        show_reasons = args.show_reasons or cfg.get("report", {}).get("show_reasons", False)
        print_report(collection, blocks, summary, currency_symbol(snapshot.country, cfg), show_reasons)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
