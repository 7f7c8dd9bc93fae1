import json
from pathlib import Path
from typing import Dict

from dues_models import LedgerSnapshot, SnapshotUnavailableError


def load_snapshot_file(path) -> LedgerSnapshot:
    """ローカルにエクスポートしたJSONからスナップショットを読み込む

    形式: {"blocks": [...], "expected_collections": [...], "payments": [...], "country": "..."}
    """
    file_path = Path(path)
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise SnapshotUnavailableError(f"スナップショットファイルが見つかりません: {file_path}") from e
    except (OSError, ValueError) as e:
        raise SnapshotUnavailableError(f"スナップショットファイルの読み込みエラー: {e}") from e

    if not isinstance(data, dict):
        raise SnapshotUnavailableError(f"スナップショットの形式が不正です: {file_path}")
    return LedgerSnapshot.from_dict(data)


def dump_snapshot_dict(blocks, collections, payments, country=None) -> Dict:
    """APIの生データをエクスポート用の辞書にまとめる"""
    return {
        "blocks": list(blocks or []),
        "expected_collections": list(collections or []),
        "payments": list(payments or []),
        "country": country,
    }


def export_snapshot_file(path, data: Dict) -> str:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2, default=str)
    print(f"💾 スナップショットを {path} に保存しました")
    return str(path)
