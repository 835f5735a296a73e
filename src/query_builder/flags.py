from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

DEFAULT_RULE_FLAGS: Dict[str, bool] = {
    "filter_readonly": False,
    "operator_readonly": False,
    "value_readonly": False,
    "no_delete": False,
}

DEFAULT_GROUP_FLAGS: Dict[str, bool] = {
    "condition_readonly": False,
    "no_add_rule": False,
    "no_add_group": False,
    "no_delete": False,
}

READONLY_RULE_FLAGS: Dict[str, bool] = dict.fromkeys(DEFAULT_RULE_FLAGS, True)
READONLY_GROUP_FLAGS: Dict[str, bool] = dict.fromkeys(DEFAULT_GROUP_FLAGS, True)


class FlagResolver:
    """
    Turns the `readonly` / `flags` keys of raw rule and group data into
    effective flag mappings, and back into their minimal serialized form.
    """

    def __init__(
        self,
        default_rule_flags: Optional[Mapping[str, bool]] = None,
        default_group_flags: Optional[Mapping[str, bool]] = None,
    ) -> None:
        self.default_rule_flags = dict(
            DEFAULT_RULE_FLAGS if default_rule_flags is None else default_rule_flags
        )
        self.default_group_flags = dict(
            DEFAULT_GROUP_FLAGS if default_group_flags is None else default_group_flags
        )

    @staticmethod
    def _parse(
        raw: Optional[Mapping[str, Any]],
        defaults: Mapping[str, bool],
        readonly: Mapping[str, bool],
    ) -> Dict[str, bool]:
        flags = dict(defaults)
        if not raw:
            return flags
        if raw.get("readonly"):
            flags.update(readonly)
        if raw.get("flags"):
            flags.update(raw["flags"])
        return flags

    def parse_rule_flags(self, raw: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        return self._parse(raw, self.default_rule_flags, READONLY_RULE_FLAGS)

    def parse_group_flags(self, raw: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        return self._parse(raw, self.default_group_flags, READONLY_GROUP_FLAGS)

    @staticmethod
    def _diff(
        flags: Mapping[str, Any], defaults: Mapping[str, bool], all_flags: bool
    ) -> Dict[str, Any]:
        if all_flags:
            return dict(flags)
        return {
            key: flags.get(key)
            for key, default in defaults.items()
            if flags.get(key) != default
        }

    def get_rule_flags(
        self, flags: Mapping[str, Any], all_flags: bool = False
    ) -> Dict[str, Any]:
        """Full copy with `all_flags`, otherwise only the keys differing from defaults."""
        return self._diff(flags, self.default_rule_flags, all_flags)

    def get_group_flags(
        self, flags: Mapping[str, Any], all_flags: bool = False
    ) -> Dict[str, Any]:
        return self._diff(flags, self.default_group_flags, all_flags)
