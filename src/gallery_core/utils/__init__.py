"""Small shared helpers."""

from gallery_core.utils.json_serializers import json_serializer

__all__ = ["json_serializer"]
