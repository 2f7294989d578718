"""Schema inference from ground truth JSON.

The comparison schema is never declared up front: it is whatever shape the
ground truth document has. Paths use dotted object keys; the shared shape of
an array of objects is addressed with a ``[]`` suffix (``items[].price``).

Known limitation: for an array of containers only the first element is
inspected, so heterogeneous elements beyond it are not modelled.
"""

from typing import Any

from pydantic import BaseModel, Field

from extraction_tester.evaluation.types import JsonKind, json_kind

SAMPLE_SIZE = 3


class SchemaField(BaseModel):
    """A single addressable leaf inferred from ground truth."""

    path: str
    type: JsonKind
    is_array: bool = False
    is_required: bool = Field(
        default=True,
        description="Presence in ground truth makes a field required",
    )
    sample_values: list[Any] = Field(default_factory=list)


class InferredSchema(BaseModel):
    fields: dict[str, SchemaField] = Field(default_factory=dict)

    @property
    def total_fields(self) -> int:
        return len(self.fields)

    def field_paths(self) -> list[str]:
        return list(self.fields)


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


class SchemaInferrer:
    """Derives field paths and primitive types from a ground truth value.

    Example:
        ```python
        schema = SchemaInferrer().infer({"id": 1, "tags": ["a"], "items": [{"sku": "x"}]})
        assert schema.field_paths() == ["id", "tags", "items[].sku"]
        ```
    """

    def infer(self, value: Any) -> InferredSchema:
        fields: dict[str, SchemaField] = {}
        self._traverse(value, "", fields)
        return InferredSchema(fields=fields)

    def _traverse(self, value: Any, prefix: str, fields: dict[str, SchemaField]) -> None:
        kind = json_kind(value)

        if kind == JsonKind.ARRAY:
            self._traverse_array(value, prefix, fields)
        elif kind == JsonKind.OBJECT:
            for key, child in value.items():
                path = _join(prefix, key)
                child_kind = json_kind(child)
                if child_kind.is_container:
                    self._traverse(child, path, fields)
                else:
                    fields[path] = SchemaField(
                        path=path,
                        type=child_kind,
                        sample_values=[child],
                    )
        # A scalar root contributes no addressable fields

    def _traverse_array(
        self, items: list[Any], path: str, fields: dict[str, SchemaField]
    ) -> None:
        if not items:
            return

        first = items[0]
        if json_kind(first).is_container:
            self._traverse(first, f"{path}[]", fields)
            return

        fields[path] = SchemaField(
            path=path,
            type=json_kind(first),
            is_array=True,
            sample_values=list(items[:SAMPLE_SIZE]),
        )


def infer(value: Any) -> InferredSchema:
    """Infer the schema of a ground truth value."""
    return SchemaInferrer().infer(value)
