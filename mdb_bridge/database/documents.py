"""
Inbound preparation of caller-supplied values.

Callers hand the adapter plain mappings and lists. Before anything reaches the
driver they are checked for shape and copied, because pymongo writes into the
objects it is given (insert_one adds "_id" to the caller's dict) and callers
own their inputs.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from bson import ObjectId

from ..constants import ID_FIELD, ID_OPERATORS
from ..exceptions import ConfigurationError

# Equality operators and the list operators that take both forms of an id.
_LIST_FORMS = {"$eq": "$in", "$ne": "$nin"}


def coerce_object_id(value: Any) -> Any:
    """Convert a 24-hex string to ObjectId; leave anything else unchanged."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def _id_forms(value: Any) -> list[Any]:
    """A 24-hex string may name a string _id or an ObjectId; match both."""
    coerced = coerce_object_id(value)
    if coerced is value:
        return [value]
    return [value, coerced]


def _coerce_id_condition(condition: Any) -> Any:
    if not isinstance(condition, Mapping):
        forms = _id_forms(condition)
        return {"$in": forms} if len(forms) > 1 else condition

    coerced = {}
    for op, operand in condition.items():
        if op in _LIST_FORMS:
            list_op = _LIST_FORMS[op]
            forms = _id_forms(operand)
            if len(forms) > 1 and list_op not in condition:
                coerced[list_op] = forms
            else:
                coerced[op] = coerce_object_id(operand)
        elif op in ID_OPERATORS and isinstance(operand, (list, tuple)):
            coerced[op] = [form for value in operand for form in _id_forms(value)]
        else:
            coerced[op] = operand
    return coerced


def prepare_filter(filter: Mapping[str, Any] | None, coerce_ids: bool = True) -> dict[str, Any]:
    """
    Copy a filter, treating None as match-all.

    Args:
        filter: Caller filter
        coerce_ids: Match 24-hex strings under "_id" both as strings and as
            ObjectIds, so generated identifiers returned as strings find
            their documents

    Raises:
        ConfigurationError: If filter is not a mapping
    """
    if filter is None:
        return {}
    if not isinstance(filter, Mapping):
        raise ConfigurationError(
            f"Filter must be a mapping, got {type(filter).__name__}", config_key="filter"
        )
    prepared = dict(filter)
    if coerce_ids and ID_FIELD in prepared:
        prepared[ID_FIELD] = _coerce_id_condition(prepared[ID_FIELD])
    return prepared


def prepare_document(document: Mapping[str, Any], argument: str = "document") -> dict[str, Any]:
    """
    Copy a document for insertion.

    Raises:
        ConfigurationError: If document is not a mapping
    """
    if not isinstance(document, Mapping):
        raise ConfigurationError(
            f"{argument} must be a mapping, got {type(document).__name__}",
            config_key=argument,
        )
    return dict(document)


def prepare_documents(documents: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """
    Copy a non-empty sequence of documents for insertion.

    Raises:
        ConfigurationError: If documents is empty, not a sequence, or holds a
            non-mapping entry
    """
    if isinstance(documents, (str, bytes, Mapping)) or not isinstance(documents, Sequence):
        raise ConfigurationError(
            f"documents must be a list of mappings, got {type(documents).__name__}",
            config_key="documents",
        )
    if not documents:
        raise ConfigurationError(
            "documents must contain at least one document", config_key="documents"
        )
    return [prepare_document(doc, argument=f"documents[{i}]") for i, doc in enumerate(documents)]


def prepare_update(update: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> Any:
    """
    Copy an update specification.

    An update is either a mapping of update operators ({"$set": {...}}) or a
    list of pipeline stages. Operator application order follows key order.

    Raises:
        ConfigurationError: If the update is empty or uses non-operator keys
    """
    if isinstance(update, Mapping):
        if not update:
            raise ConfigurationError("update must not be empty", config_key="update")
        plain = [key for key in update if not str(key).startswith("$")]
        if plain:
            raise ConfigurationError(
                "update must only contain update operators; use replace_one for "
                "whole-document replacement",
                config_key="update",
                config_value=plain,
            )
        return dict(update)
    if isinstance(update, Sequence) and not isinstance(update, (str, bytes)):
        return prepare_pipeline(update, argument="update")
    raise ConfigurationError(
        f"update must be a mapping or a list of stages, got {type(update).__name__}",
        config_key="update",
    )


def prepare_replacement(replacement: Mapping[str, Any]) -> dict[str, Any]:
    """
    Copy a replacement document.

    Raises:
        ConfigurationError: If the replacement contains update operators
    """
    prepared = prepare_document(replacement, argument="replacement")
    operators = [key for key in prepared if str(key).startswith("$")]
    if operators:
        raise ConfigurationError(
            "replacement must not contain update operators",
            config_key="replacement",
            config_value=operators,
        )
    return prepared


def prepare_pipeline(
    pipeline: Sequence[Mapping[str, Any]], argument: str = "pipeline"
) -> list[dict[str, Any]]:
    """
    Copy an aggregation pipeline, keeping stage order.

    Raises:
        ConfigurationError: If pipeline is not a list of mappings
    """
    if isinstance(pipeline, (str, bytes, Mapping)) or not isinstance(pipeline, Sequence):
        raise ConfigurationError(
            f"{argument} must be a list of stages, got {type(pipeline).__name__}",
            config_key=argument,
        )
    stages = []
    for i, stage in enumerate(pipeline):
        if not isinstance(stage, Mapping):
            raise ConfigurationError(
                f"{argument}[{i}] must be a mapping, got {type(stage).__name__}",
                config_key=argument,
            )
        stages.append(dict(stage))
    return stages


def prepare_options(options: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Copy an options mapping into driver keyword arguments.

    Keys pass through unchanged; the driver rejects the ones it does not know.
    A "sort" mapping becomes an ordered list of (field, direction) pairs.

    Raises:
        ConfigurationError: If options is not a mapping
    """
    if options is None:
        return {}
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"options must be a mapping, got {type(options).__name__}", config_key="options"
        )
    prepared = dict(options)
    sort = prepared.get("sort")
    if isinstance(sort, Mapping):
        prepared["sort"] = list(sort.items())
    return prepared
