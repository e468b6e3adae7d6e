import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        currency_format: str,
        report_title: str,
        export_prefix: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.currency_format = currency_format
        self.report_title = report_title
        self.export_prefix = export_prefix


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINFLOW_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finflow.db"
    database_url = os.getenv("FINFLOW_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINFLOW_TIMEZONE", "UTC")
    currency_format = os.getenv("FINFLOW_CURRENCY_FORMAT", '"$"#,##0.00')
    report_title = os.getenv("FINFLOW_REPORT_TITLE", "FINANCIAL REPORT")
    export_prefix = os.getenv("FINFLOW_EXPORT_PREFIX", "FinFlow_Export")
    return Settings(
        database_url=database_url,
        timezone=timezone,
        currency_format=currency_format,
        report_title=report_title,
        export_prefix=export_prefix,
    )
