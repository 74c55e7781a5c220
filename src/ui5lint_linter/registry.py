from typing import Dict, Iterable, List, Optional

from .rules import BUILTIN_RULES, FATAL_RULE_IDS, RuleDefinition, Trigger


class RuleRegistry:
    """Registry for the rule definitions known to a linter run"""

    def __init__(self, load_builtins: bool = True):
        self._rules: Dict[str, RuleDefinition] = {}
        if load_builtins:
            self._load_builtin_rules()

    def register(self, rule: RuleDefinition):
        if rule.rule_id in self._rules:
            raise ValueError(f"Rule '{rule.rule_id}' is already registered")
        self._rules[rule.rule_id] = rule

    def get(self, rule_id: str) -> RuleDefinition:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise KeyError(f"Unknown rule id: {rule_id}") from None

    def get_all_rules(self) -> List[RuleDefinition]:
        return list(self._rules.values())

    def get_enabled_rules(self, select: Optional[Iterable[str]] = None, ignore: Optional[Iterable[str]] = None) -> List[RuleDefinition]:
        """Rules matching ``select`` and not matching ``ignore``.

        Entries match a rule id exactly or as a prefix ('no-' selects every
        'no-*' rule). An empty selection or 'all' selects everything. Fatal
        rules are always enabled.
        """
        select = [s.lower() for s in (select or [])]
        ignore = [i.lower() for i in (ignore or [])]

        def matches(rule_id: str, patterns: List[str]) -> bool:
            return any(p == "all" or rule_id == p or rule_id.startswith(p) for p in patterns)

        enabled = []
        for rule in self._rules.values():
            if rule.rule_id in FATAL_RULE_IDS:
                enabled.append(rule)
            elif (not select or matches(rule.rule_id, select)) and not matches(rule.rule_id, ignore):
                enabled.append(rule)
        return enabled

    def rules_for(self, trigger: Trigger, rules: Optional[Iterable[RuleDefinition]] = None) -> List[RuleDefinition]:
        """Rules listening on ``trigger`` that have a detector for it"""
        candidates = self._rules.values() if rules is None else rules
        return [r for r in candidates if trigger in r.triggers and r.detector_for(trigger) is not None]

    def _load_builtin_rules(self):
        for rule in BUILTIN_RULES:
            self.register(rule)
