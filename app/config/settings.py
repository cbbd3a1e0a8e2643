from typing import Any

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configuración de la aplicación utilizando Pydantic BaseSettings.
    Carga automáticamente las variables de entorno.
    """

    # API Configuration
    PROJECT_NAME: str = "Patient Outreach Orchestrator"
    PROJECT_DESCRIPTION: str = "TCLE consent, appointment reminders and feedback over WhatsApp"
    VERSION: str = "0.1.0"

    # Registry (Google Sheets)
    SPREADSHEET_ID: str = Field("", description="ID de la planilla de cadastros")
    SHEET_NAME: str = Field("Cadastros", description="Nombre de la hoja")
    SHEET_RANGE: str = Field("Cadastros!A2:L", description="Rango leído en cada refresh")
    SHEETS_API_BASE: str = Field("https://sheets.googleapis.com/v4", description="URL base de la API de Sheets")
    GOOGLE_CREDENTIALS_FILE: str = Field("credentials.json", description="Service account JSON")
    SHEETS_TIMEOUT: float = Field(30.0, description="Timeout de requests a Sheets en segundos")

    # WhatsApp Cloud API settings
    WHATSAPP_API_BASE: str = Field("https://graph.facebook.com", description="URL base para la API de WhatsApp")
    WHATSAPP_API_VERSION: str = Field("v22.0", description="Versión de la API de WhatsApp")
    WHATSAPP_PHONE_NUMBER_ID: str = Field("", description="ID del número de teléfono de WhatsApp")
    WHATSAPP_ACCESS_TOKEN: str = Field("", description="Token de acceso permanente para la API de WhatsApp")
    WHATSAPP_VERIFY_TOKEN: str = Field("", description="Token de verificación para el webhook de WhatsApp")

    # Operator channel and links sent to patients
    ADMIN_NUMBER: str = Field("5511999999999", description="Número del operador que recibe alertas")
    FORM_URL: str = Field("", description="Link del formulario de cadastro")
    TCLE_URL: str = Field("", description="Link del TCLE")
    CLINIC_NAME: str = Field("FMJ", description="Nombre usado en los digests al operador")
    EXAM_NAME: str = Field("colonoscopia", description="Exame informado a los pacientes")

    # Cache
    CACHE_TTL_SECONDS: float = Field(30.0, description="Edad máxima del espejo de la planilla")

    # Consent (TCLE)
    TCLE_TIMEOUT_HOURS: int = Field(72, description="Horas hasta expirar una sesión TCLE")
    TCLE_MAX_ATTEMPTS: int = Field(3, description="Máximo de envíos/intentos del TCLE")

    # Locale-specific phone and spreadsheet rules
    COUNTRY_CODE: str = Field("55", description="Código de país")
    DEFAULT_AREA_CODE: str = Field("11", description="DDD usado cuando el número no trae área")
    AREA_CODE_LENGTH: int = Field(2, description="Dígitos del código de área")
    MOBILE_PREFIX_DIGIT: str = Field("9", description="Dígito insertado en móviles de 8 dígitos")
    SPREADSHEET_EPOCH: str = Field("1899-12-30", description="Época de los seriales de fecha")
    TIMEZONE: str = Field("America/Sao_Paulo", description="Zona horaria de la clínica")

    # Row defaults
    DEFAULT_ADDRESS: str = Field(".", description="Endereço padrão")
    INITIAL_STATUS: str = Field("Pendente", description="Status inicial del turno")

    # State persistence
    STATE_FILE: str = Field("./estado_notificacoes.json", description="Archivo de estado persistido")

    # Notification window and feedback
    NOTIFICATION_START_HOUR: int = Field(7, description="Hora local de inicio de envíos")
    NOTIFICATION_END_HOUR: int = Field(20, description="Hora local de fin de envíos (exclusiva)")
    FEEDBACK_GRACE_HOURS: int = Field(4, description="Horas tras el turno antes de pedir feedback")
    MENU_SPAM_WINDOW_SECONDS: float = Field(1.0, description="Ventana anti-spam del menú")

    # Recovery
    MAX_RECONNECT_ATTEMPTS: int = Field(10, description="Tentativas de reconexión del transporte")
    RECONNECT_INTERVAL_SECONDS: float = Field(30.0, description="Intervalo base de reconexión")
    FATAL_EXIT_DELAY_SECONDS: float = Field(10.0, description="Espera antes de salir en producción")

    # Periodic jobs (seconds)
    REFRESH_INTERVAL_SECONDS: int = Field(60, description="Refresh de planilla + nuevos cadastros")
    NOTIFICATION_INTERVAL_DEV_SECONDS: int = Field(60, description="Barrido de notificaciones (dev)")
    NOTIFICATION_INTERVAL_PROD_SECONDS: int = Field(120, description="Barrido de notificaciones (prod)")
    CONNECTIVITY_PROBE_INTERVAL_SECONDS: int = Field(300, description="Verificación de la planilla")
    PERSIST_INTERVAL_SECONDS: int = Field(300, description="Persistencia periódica del estado")
    MEMORY_CLEANUP_INTERVAL_SECONDS: int = Field(3600, description="Reconciliación de memoria")
    TCLE_SWEEP_INTERVAL_SECONDS: int = Field(4 * 3600, description="Barrido de TCLE expirados")

    # Application Settings
    DEBUG: bool = Field(False, description="Modo de depuración")
    ENVIRONMENT: str = Field("development", description="Entorno de ejecución")
    LOG_LEVEL: str = Field("INFO", description="Nivel de log")
    RECENT_LOG_BUFFER_SIZE: int = Field(100, description="Logs recientes retenidos en memoria")

    # Status probe
    ENABLE_STATUS_ENDPOINT: bool = Field(False, description="Expone GET /status")
    STATUS_PORT: int = Field(3000, description="Puerto HTTP del servicio")

    # Sentry Configuration
    SENTRY_DSN: str | None = Field(None, description="Sentry DSN for error tracking")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignorar campos extras en lugar de generar un error
    )

    def __init__(self, **data: Any):
        super().__init__(**data)

    @field_validator("NOTIFICATION_START_HOUR", "NOTIFICATION_END_HOUR")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        if not 0 <= v <= 24:
            raise ValueError("Hour must be between 0 and 24")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def is_production(self) -> bool:
        """Determina si está en modo producción"""
        return not self.DEBUG and self.ENVIRONMENT.lower() in ["production", "prod"]

    @computed_field
    @property
    def notification_interval_seconds(self) -> int:
        """Intervalo efectivo del barrido de notificaciones según el entorno"""
        if self.is_production:
            return self.NOTIFICATION_INTERVAL_PROD_SECONDS
        return self.NOTIFICATION_INTERVAL_DEV_SECONDS

    @property
    def admin_key(self) -> str:
        """Número del operador solo con dígitos"""
        return "".join(c for c in self.ADMIN_NUMBER if c.isdigit())


# Singleton para configuración
_settings_instance = None


def get_settings() -> Settings:
    """
    Retorna una instancia cacheada de la configuración.
    Esto evita cargar las variables de entorno múltiples veces.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
