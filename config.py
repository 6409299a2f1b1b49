import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    # --- CBT BACKEND ---
    api_base_url: str = "http://localhost:5000"
    api_token: str = ""
    api_timeout: float = 10.0

    # --- REPORT BRANDING ---
    school_name: str = "Faith Immaculate Academy"
    school_logo_url: str = "https://placehold.co/150x50/3b82f6/ffffff?text=FIA+CBT"
    report_time_taken_minutes: int = 60
    report_date_format: str = "%d/%m/%Y"

    # --- PRINT ---
    print_fallback_stylesheet: str = "https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/css/bootstrap.min.css"
    stylesheets: list = field(default_factory=lambda: ["/static/css/console.css"])

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            api_base_url=os.getenv("CBT_API_BASE_URL", defaults.api_base_url),
            api_token=os.getenv("CBT_API_TOKEN", defaults.api_token),
            api_timeout=_env_float("CBT_API_TIMEOUT", defaults.api_timeout),
            school_name=os.getenv("SCHOOL_NAME", defaults.school_name),
            school_logo_url=os.getenv("SCHOOL_LOGO_URL", defaults.school_logo_url),
            report_time_taken_minutes=_env_int("REPORT_TIME_TAKEN_MINUTES", defaults.report_time_taken_minutes),
            report_date_format=os.getenv("REPORT_DATE_FORMAT", defaults.report_date_format),
            print_fallback_stylesheet=os.getenv("PRINT_FALLBACK_STYLESHEET", defaults.print_fallback_stylesheet),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )


BASE_DIR = os.path.dirname(os.path.abspath(__file__))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")
STATIC_DIR = os.path.join(BASE_DIR, "static")
