"""
Merging of FeatureUsage counters into per-application records.

Each FeatureUsage subtree holds one running total per application. Registry
counters are cumulative totals maintained by Explorer, so a new observation
replaces the stored counter rather than adding to it. When two value names
of one subtree resolve to the same identifier, the last one enumerated wins.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from core.enums import CounterField, SoftFailureKind
from core.logging import get_logger

from ...callbacks import CollectionCallbacks
from ...exceptions import RegistryError, ValueConversionError
from .identifiers import resolve_identifier
from .models import ApplicationIdentifier, ApplicationUsageRecord, U32_MAX
from .registry_reader import RegistryReader, RegistryValue

LOGGER = get_logger("extractors.system.taskbar.aggregator")

ApplicationMap = Dict[ApplicationIdentifier, ApplicationUsageRecord]


def _counter_value(raw: Union[RegistryValue, int]) -> int:
    if isinstance(raw, RegistryValue):
        return raw.to_u32()
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueConversionError(f"Counter is not an integer: {raw!r}")
    if not 0 <= raw <= U32_MAX:
        raise ValueConversionError(f"Counter {raw} is out of 32-bit range")
    return raw


def update_record(
    target: ApplicationMap,
    identifier: ApplicationIdentifier,
    field: CounterField,
    value: int,
) -> ApplicationUsageRecord:
    """Get or create the record for ``identifier`` and overwrite one counter."""
    record = target.get(identifier)
    if record is None:
        record = ApplicationUsageRecord(identifier=identifier)
        target[identifier] = record
    record.set_counter(field, value)
    return record


def merge_subtree(
    values: Iterable[Tuple[str, Union[RegistryValue, int]]],
    env: Mapping[str, str],
    target: ApplicationMap,
    field: CounterField,
    *,
    callbacks: Optional[CollectionCallbacks] = None,
    key_path: str = "",
) -> int:
    """
    Merge ``(value name, counter)`` pairs of one subtree into ``target``.

    Args:
        values: Value names and their raw data
        env: Environment of the user owning the subtree
        target: Identifier -> record map, updated in place
        field: Counter this subtree feeds
        callbacks: Receives a soft failure for every counter that is not a DWORD
        key_path: Registry path of the subtree, used in soft-failure messages

    Returns:
        Number of values merged
    """
    merged = 0
    for name, raw in values:
        if not name:
            continue
        try:
            counter = _counter_value(raw)
        except ValueConversionError as e:
            if callbacks is not None:
                callbacks.on_soft_failure(
                    SoftFailureKind.INVALID_COUNTER,
                    f"Invalid {field} in {key_path}\\{name}: registry value must be a DWORD: {e}",
                )
            continue

        identifier = resolve_identifier(name, env)
        update_record(target, identifier, field, counter)
        merged += 1
    return merged


def iter_subtree_values(
    registry: RegistryReader,
    key: Any,
    *,
    key_path: str,
    callbacks: Optional[CollectionCallbacks] = None,
) -> Iterator[Tuple[str, RegistryValue]]:
    """
    Yield ``(name, value)`` for every readable value of an open key.

    Unreadable values are reported and skipped.

    Raises:
        RegistryError: if the values of the key cannot be enumerated
    """
    for name in registry.enumerate_values(key):
        if not name:
            continue
        try:
            value = registry.read_value(key, name)
        except RegistryError as e:
            if callbacks is not None:
                callbacks.on_soft_failure(
                    SoftFailureKind.UNREADABLE_VALUE,
                    f"Cannot read {key_path}\\{name} registry value: {e}",
                )
            continue
        yield name, value


def process_subtree(
    registry: RegistryReader,
    key: Any,
    env: Mapping[str, str],
    target: ApplicationMap,
    field: CounterField,
    *,
    key_path: str,
    callbacks: Optional[CollectionCallbacks] = None,
) -> int:
    """Read an open FeatureUsage subtree key and merge its counters into ``target``."""
    merged = merge_subtree(
        iter_subtree_values(registry, key, key_path=key_path, callbacks=callbacks),
        env,
        target,
        field,
        callbacks=callbacks,
        key_path=key_path,
    )
    LOGGER.debug("Merged %d %s value(s) from %s", merged, field, key_path)
    return merged
