from .classifier import classify, detect_category, detect_subcategory
from .extraction import extract_fields
from .llm_client import complete_json, parse_json_object
from .preprocessing import PreprocessResult, preprocess

__all__ = [
    "classify",
    "detect_category",
    "detect_subcategory",
    "extract_fields",
    "complete_json",
    "parse_json_object",
    "PreprocessResult",
    "preprocess",
]
