from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from typing_extensions import Self

from fixture_builder.internal.util.toml import dump_toml_to_str, load_toml_text


def _normalize(value: Any) -> Any:
    """
    Reduce a value to plain JSON/TOML/YAML friendly types.

    Mappings come back key-sorted and sets come back as sorted lists so that two
    equal models always serialize to the same text.
    """
    match value:
        case Path():
            return value.as_posix()
        case Enum():
            return value.value
        case Mapping():
            return {str(k): _normalize(value[k]) for k in sorted(value, key=str)}
        case set() | frozenset():
            return sorted(_normalize(v) for v in value)
        case list() | tuple():
            return [_normalize(v) for v in value]
        case datetime():
            return value.isoformat()
        case _:
            return value


def _drop_none(value: Any) -> Any:
    # TOML has no null
    if isinstance(value, Mapping):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value if v is not None]
    return value


class MultiformatSerializableMixin:
    def mapping_hash(self) -> str:
        payload = json.dumps(_normalize(self.to_mapping()), sort_keys=True).encode(
            "utf-8"
        )
        return hashlib.new("sha512", payload).hexdigest()

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        raise NotImplementedError

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(_normalize(self.to_mapping()), indent=indent)

    def to_yaml(self) -> str:
        try:
            import yaml
        except ImportError as e:
            raise RuntimeError(
                "YAML support requires PyYAML (install fixture-builder[yaml])"
            ) from e
        return yaml.safe_dump(_normalize(self.to_mapping()), sort_keys=True)

    def to_toml(self) -> str:
        return dump_toml_to_str(_drop_none(_normalize(self.to_mapping())))

    def serialize(self, fmt: str) -> str:
        match fmt:
            case "json":
                return self.to_json()
            case "yaml":
                return self.to_yaml()
            case "toml":
                return self.to_toml()
            case _:
                raise ValueError(f"Unrecognized serialization format: {fmt!r}")

    def flat_summary(
        self,
        *,
        first_fields: Iterable[str] = (),
        exclude: Iterable[str] = (),
        sep: str = ", ",
        include_empty: bool = False,
    ) -> str:
        mapping = self.to_mapping()
        all_keys = set(mapping.keys()) - set(exclude)
        first = [f for f in first_fields if f in all_keys]
        items: list[str] = []
        for k in first + sorted(all_keys - set(first)):
            v = mapping[k]
            if not include_empty and (
                v is None
                or v == ""
                or (isinstance(v, (list, tuple, set, dict)) and not v)
            ):
                continue
            if isinstance(v, (datetime, date)):
                items.append(f"{k}={v.isoformat()}")
            elif isinstance(v, Enum):
                items.append(f"{k}={v.value}")
            else:
                items.append(f"{k}={v}")
        return sep.join(items)

    def __str__(self) -> str:
        return self.flat_summary()


class MultiformatDeserializableMixin:
    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        raise NotImplementedError

    @classmethod
    def deserialize(cls, text: str, fmt: str) -> Self:
        raw = cls._parse_text(text, fmt)
        mapping = cls._preprocess_mapping(cls._coerce_root_mapping(raw), fmt=fmt)
        inst = cls.from_mapping(mapping)
        return cls._postprocess_instance(inst, fmt=fmt)

    @classmethod
    def from_json(cls, text: str) -> Self:
        return cls.deserialize(text, "json")

    @classmethod
    def from_yaml(cls, text: str) -> Self:
        return cls.deserialize(text, "yaml")

    @classmethod
    def from_toml(cls, text: str) -> Self:
        return cls.deserialize(text, "toml")

    @classmethod
    def from_file(cls, path: str | Path, fmt: str | None = None) -> Self:
        path = Path(path)
        text = cls._load_text(path)
        fmt = fmt or cls._infer_format_from_suffix(path)
        raw = cls._parse_text(text, fmt)
        mapping = cls._preprocess_mapping(
            cls._coerce_root_mapping(raw), fmt=fmt, path=path
        )
        inst = cls.from_mapping(mapping)
        return cls._postprocess_instance(inst, fmt=fmt, path=path)

    @staticmethod
    def _load_text(path: Path) -> str:
        return path.read_text(encoding="utf-8")

    @staticmethod
    def _infer_format_from_suffix(path: Path) -> str:
        match path.suffix.lower():
            case ".json":
                return "json"
            case ".yaml" | ".yml":
                return "yaml"
            case ".toml":
                return "toml"
            case _:
                raise ValueError(
                    f"Cannot infer format from file suffix: {path.suffix!r}"
                )

    @staticmethod
    def _parse_text(text: str, fmt: str) -> Any:
        match fmt:
            case "json":
                return json.loads(text)
            case "yaml":
                try:
                    import yaml
                except ImportError as e:
                    raise RuntimeError(
                        "YAML support requires PyYAML (install fixture-builder[yaml])"
                    ) from e
                docs = list(yaml.safe_load_all(text))
                if len(docs) > 1:
                    raise ValueError("YAML input must contain a single document")
                return docs[0] if docs else {}
            case "toml":
                return load_toml_text(text)
            case _:
                raise ValueError(f"Unrecognized serialization format: {fmt!r}")

    @staticmethod
    def _coerce_root_mapping(raw: Any) -> Mapping[str, Any]:
        if isinstance(raw, Mapping):
            return raw
        raise TypeError(f"Expected a mapping at the document root, got {type(raw).__name__}")

    @classmethod
    def _preprocess_mapping(
        cls, mapping: Mapping[str, Any], *, fmt: str, path: Path | None = None
    ) -> Mapping[str, Any]:
        return mapping

    @classmethod
    def _postprocess_instance(
        cls, inst: Self, *, fmt: str, path: Path | None = None
    ) -> Self:
        return inst


class MultiformatModelMixin(MultiformatSerializableMixin, MultiformatDeserializableMixin):
    pass
