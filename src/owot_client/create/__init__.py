"""Tools for laying out edits programmatically."""

from owot_client.create.edits import RegionEdit, StyledEdit, TextEdit, TranslateEdit

__all__ = ["RegionEdit", "StyledEdit", "TextEdit", "TranslateEdit"]
