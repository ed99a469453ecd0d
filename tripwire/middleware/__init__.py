from .form_scanner import FormBodyScanner, is_form_request
from .security_events import SecurityEventMiddleware

__all__ = ["SecurityEventMiddleware", "FormBodyScanner", "is_form_request"]
