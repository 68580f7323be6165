"""Sample Python package."""

from .models import User
