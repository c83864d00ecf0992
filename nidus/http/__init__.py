"""
Nidus HTTP - the context handed to controller methods.
"""

from .context import HttpContext, adapt_error_handler, adapt_handler
from .response import HttpResponse

__all__ = ["HttpContext", "HttpResponse", "adapt_error_handler", "adapt_handler"]
