from .form import parse_upload_form, parse_year
from .gateway import UploadGateway, generate_object_key, sanitize_filename

__all__ = [
    "UploadGateway",
    "generate_object_key",
    "parse_upload_form",
    "parse_year",
    "sanitize_filename",
]
