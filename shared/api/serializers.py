"""Serializer building blocks."""

from __future__ import annotations

from typing import Any

from rest_framework import serializers  # type: ignore


class StrictFieldsMixin:
    """Reject request payloads carrying fields the serializer does not declare.

    DRF silently drops unknown keys; request bodies in this API are strict so
    a typo such as ``move_in`` instead of ``move_in_date`` is reported.
    """

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:  # type: ignore
        initial = getattr(self, "initial_data", None)
        if hasattr(initial, "keys"):
            writable = {name for name, field in self.fields.items() if not field.read_only}
            unknown = sorted(set(initial.keys()) - writable)
            if unknown:
                raise serializers.ValidationError(
                    {name: "Unknown field." for name in unknown}
                )
        return super().validate(attrs)  # type: ignore
