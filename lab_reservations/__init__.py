from .client import ReservationServiceClient
from .config import AppConfig, ConfigError, load_config
from .controller import ViewController, ViewState
from .errors import FormatError, LocalValidationError, NetworkError, ReservationClientError, ValidationError
from .models import LABORATORIES, DateRangeFilter, Reservation, ReservationDraft
from .time_format import to_canonical, to_display_string, to_picker_string
from .validators import validate_date_range, validate_draft_fields

__all__ = [
	"ReservationServiceClient",
	"AppConfig",
	"ConfigError",
	"load_config",
	"ViewController",
	"ViewState",
	"FormatError",
	"LocalValidationError",
	"NetworkError",
	"ReservationClientError",
	"ValidationError",
	"LABORATORIES",
	"DateRangeFilter",
	"Reservation",
	"ReservationDraft",
	"to_canonical",
	"to_display_string",
	"to_picker_string",
	"validate_date_range",
	"validate_draft_fields",
]
