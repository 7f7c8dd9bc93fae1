"""
環境変数検証 - 管理費入金ステータス集計用

台帳APIへの接続に必要な環境変数の存在と形式を確認する。
"""

import os
import re
from typing import Dict
from datetime import datetime


class EnvironmentValidator:
    """台帳API接続用の環境変数チェック"""

    REQUIRED_VARS = {
        "LEDGER_API_URL": r"^https?://\S+$",
        "LEDGER_API_KEY": r"^\S{20,}$",
        "APARTMENT_ID": r"^[A-Za-z0-9_-]+$",
    }

    OPTIONAL_VARS = {
        "LEDGER_ACCESS_CODE": r"^[A-Za-z0-9_-]{4,}$",
        "DUES_STATUS_CONFIG": r"^\S+\.ya?ml$",
    }

    def validate_all(self) -> Dict:
        """全環境変数の検証を実行し、結果を表示して返す"""
        print("\n🔍 環境変数チェック")
        missing, invalid, warnings = [], [], []

        for var_name, pattern in self.REQUIRED_VARS.items():
            value = os.getenv(var_name)
            if not value:
                missing.append(var_name)
                print(f"  ❌ {var_name}: 未設定")
            elif not re.match(pattern, value):
                invalid.append({"name": var_name, "issue": "フォーマット不正"})
                print(f"  ⚠️  {var_name}: フォーマット検証失敗")
            else:
                print(f"  ✅ {var_name}: 検証OK")

        for var_name, pattern in self.OPTIONAL_VARS.items():
            value = os.getenv(var_name)
            if not value:
                print(f"  ⚪ {var_name}: 未設定 (オプション)")
            elif not re.match(pattern, value):
                warnings.append({"name": var_name, "issue": "フォーマット警告"})
                print(f"  ⚠️  {var_name}: フォーマット警告")
            else:
                print(f"  ✅ {var_name}: 検証OK")

        status = "pass" if not missing and not invalid else "fail"
        print("\n🎉 環境変数検証: 合格" if status == "pass" else "\n❌ 環境変数検証: 失敗 (.env を確認してください)")
        return {
            "timestamp": datetime.now().isoformat(),
            "status": status,
            "missing_required": missing,
            "invalid_format": invalid,
            "warnings": warnings,
            "required_ok": len(self.REQUIRED_VARS) - len(missing) - len(invalid),
        }

    def ensure_valid(self) -> bool:
        """基本要件のクイックチェック（他のモジュールから呼び出し用）"""
        missing = [var for var in self.REQUIRED_VARS if not os.getenv(var)]
        if missing:
            raise EnvironmentError(f"必須環境変数が未設定です: {', '.join(missing)}")
        return True
