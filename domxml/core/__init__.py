# domxml/core/__init__.py
from .exceptions import DecodeError, DecodeErrorKind, DomXmlError, Fatal, HypervisorError, ValidationError

__all__ = ["DecodeError", "DecodeErrorKind", "DomXmlError", "Fatal", "HypervisorError", "ValidationError"]
