"""Configuration accepted by the client generator."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_RUNTIME_PACKAGE = "openapi_client_runtime"


class GeneratorOptions(BaseModel):
    """Options that change which declarations are emitted and how.

    Attributes:
        exclude: Operations carrying any of these tags are skipped.
        include: When set, only operations carrying one of these tags are kept.
        use_enum_type: Emit named ``Enum`` classes instead of literal unions.
        merge_read_write_only: Keep one model per schema with every property,
            instead of splitting Read/Write variants.
        union_undefined: Union optional properties with an explicit undefined type.
        optimistic: Wrap every fetch call in the runtime ``ok`` adapter.
        runtime_package: Import path of the runtime request library.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    exclude: Optional[tuple[str, ...]] = None
    include: Optional[tuple[str, ...]] = None
    use_enum_type: bool = False
    merge_read_write_only: bool = False
    union_undefined: bool = False
    optimistic: bool = False
    runtime_package: str = Field(
        default=DEFAULT_RUNTIME_PACKAGE,
        pattern=r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*$",
    )

    def skips_tags(self, tags: Optional[list[str]]) -> bool:
        """Return whether an operation with ``tags`` is filtered out."""
        tag_list = tags or []
        if self.exclude and any(tag in self.exclude for tag in tag_list):
            return True
        if self.include is not None:
            return not any(tag in self.include for tag in tag_list)
        return False
