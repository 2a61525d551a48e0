from .result import AuthResult, ServiceError, parse_row, parse_rows

__all__ = ["AuthResult", "ServiceError", "parse_row", "parse_rows"]
