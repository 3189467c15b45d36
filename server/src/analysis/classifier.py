"""
Request classification against the privacy/security rule set.

Every rule is evaluated independently for every request; the result
is the union of all triggered rules in rule order.  A rule that
raises is logged and treated as not triggered for that request.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence

from src.analysis import tracker_patterns
from src.models import traffic
from src.utils import logger
from src.utils import url as url_mod

log = logger.create_logger("Classifier")

ISSUE_UNENCRYPTED = "Unencrypted (HTTP)"
ISSUE_THIRD_PARTY_TRACKER = "3rd Party Tracker"
ISSUE_HIDDEN_FIRST_PARTY_TRACKER = "Hidden 1st Party Tracker"
ISSUE_PII_EMAIL = "PII (Email) Leak"


@dataclasses.dataclass(frozen=True)
class RuleInput:
    """Everything a rule may inspect about one request."""

    url: str
    hostname: str
    payload: str | None
    main_domain: str


@dataclasses.dataclass(frozen=True)
class RuleOutcome:
    """A triggered rule: the violation plus whether it marks a tracker."""

    violation: traffic.Violation
    marks_tracker: bool = False


@dataclasses.dataclass(frozen=True)
class Classification:
    """Result of classifying one request."""

    violations: tuple[traffic.Violation, ...] = ()
    is_tracker: bool = False


Rule = Callable[[RuleInput], RuleOutcome | None]


# ============================================================================
# Rules
# ============================================================================


def unencrypted_transport_rule(data: RuleInput) -> RuleOutcome | None:
    """Flag requests sent over plain HTTP."""
    if data.url.startswith("http://"):
        return RuleOutcome(traffic.Violation(issue=ISSUE_UNENCRYPTED, severity="high"))
    return None


def tracker_rule(data: RuleInput) -> RuleOutcome | None:
    """Flag requests whose URL contains a known tracker keyword.

    Trackers served from the scanned site's own domain are reported
    as hidden first-party trackers.
    """
    if tracker_patterns.find_tracker_keyword(data.url) is None:
        return None
    if data.main_domain not in data.hostname:
        issue = ISSUE_THIRD_PARTY_TRACKER
    else:
        issue = ISSUE_HIDDEN_FIRST_PARTY_TRACKER
    return RuleOutcome(traffic.Violation(issue=issue, severity="medium"), marks_tracker=True)


def pii_email_rule(data: RuleInput) -> RuleOutcome | None:
    """Flag email addresses leaking through the URL or the decoded body."""
    if tracker_patterns.contains_email(data.url) or tracker_patterns.contains_email(data.payload):
        return RuleOutcome(traffic.Violation(issue=ISSUE_PII_EMAIL, severity="critical"))
    return None


DEFAULT_RULES: tuple[Rule, ...] = (
    unencrypted_transport_rule,
    tracker_rule,
    pii_email_rule,
)


# ============================================================================
# Classification
# ============================================================================


def classify(
    request: traffic.RequestDescription,
    payload: str | None,
    main_domain: str,
    rules: Sequence[Rule] = DEFAULT_RULES,
) -> Classification:
    """Evaluate *request* against every rule.

    Args:
        request: The intercepted request.
        payload: The decoded (or raw) request body.
        main_domain: Hostname of the scan target, ``www.`` stripped.
        rules: Rules to evaluate, in order.

    Returns:
        All triggered violations and the tracker flag.
    """
    data = RuleInput(
        url=request.url,
        hostname=url_mod.extract_domain(request.url),
        payload=payload,
        main_domain=main_domain,
    )
    violations: list[traffic.Violation] = []
    is_tracker = False
    for rule in rules:
        try:
            outcome = rule(data)
        except Exception as exc:
            log.debug(
                "Rule failed, treating as not triggered",
                {"rule": getattr(rule, "__name__", repr(rule)), "url": request.url, "error": str(exc)},
            )
            continue
        if outcome is None:
            continue
        violations.append(outcome.violation)
        is_tracker = is_tracker or outcome.marks_tracker
    return Classification(violations=tuple(violations), is_tracker=is_tracker)
