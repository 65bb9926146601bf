"""
Dividend and withholding tax matching.

IBKR reports a dividend and the tax withheld on it as two separate lines.
Ghostfolio wants one dividend activity with the tax as its fee, so the
second line of a pair completes the activity emitted for the first one.

Two lines describe the same event when symbol, currency and date are equal
and the first 20 characters of their descriptions agree.
"""

from collections import defaultdict
from typing import Optional

from ibkr_ghostfolio.models import Activity, EconomicEvent, EventKind


PREFIX_LENGTH = 20
TAX_MARKER = "TAX"

MATCHABLE_KINDS = (EventKind.DIVIDEND, EventKind.DIVIDEND_TAX)


def description_prefix(text: str) -> str:
    return text[:PREFIX_LENGTH]


class DividendMatcher:
    """
    Owns the output activity list and merges dividend/tax counterparts.

    Activities are indexed by (symbol, currency, date). Within a key the
    first emitted activity with an equal description prefix wins, which is
    the same result a front-to-back scan of the list would give.

    An activity emitted for a withholding tax line is a stub until its
    dividend arrives: it has no quantity and carries the tax as fee.
    """

    def __init__(self):
        self._activities: list[Activity] = []
        self._index: dict[tuple[str, str, str], list[Activity]] = defaultdict(list)
        # id() of activities still waiting for their dividend
        self._tax_stubs: set[int] = set()

    @property
    def activities(self) -> list[Activity]:
        """Activities emitted so far, in input order."""
        return self._activities

    def __len__(self) -> int:
        return len(self._activities)

    def append(self, activity: Activity, kind: Optional[EventKind] = None) -> None:
        """
        Append a new activity to the output.

        Args:
            activity: Activity to emit
            kind: Kind of the event it was built from. When unknown, an
                activity whose comment mentions TAX is taken as a tax stub.
        """
        self._activities.append(activity)
        self._index[(activity.symbol, activity.currency, activity.date)].append(activity)

        if kind == EventKind.DIVIDEND_TAX or (kind is None and TAX_MARKER in activity.comment):
            self._tax_stubs.add(id(activity))

    def is_tax_stub(self, activity: Activity) -> bool:
        """Whether the activity was emitted for a tax line and is not completed yet."""
        return id(activity) in self._tax_stubs

    def find_match(
        self,
        symbol: str,
        currency: str,
        activity_date: str,
        description: str,
    ) -> Optional[Activity]:
        """
        Find the emitted activity describing the same dividend event.

        Args:
            symbol: Resolved symbol
            currency: Canonical currency
            activity_date: Formatted activity date
            description: Description of the incoming line

        Returns:
            First matching activity, or None
        """
        prefix = description_prefix(description)
        for activity in self._index.get((symbol, currency, activity_date), []):
            if description_prefix(activity.comment) == prefix:
                return activity
        return None

    def merge(self, event: EconomicEvent, activity_date: str) -> Optional[Activity]:
        """
        Merge a dividend or tax event into its emitted counterpart.

        A dividend completing a tax stub gives it the dividend's comment,
        price and quantity and keeps the stub's fee. A tax line completing a
        dividend sets its fee. A line matching an activity of its own kind is
        absorbed without changing it.

        Args:
            event: Ordinary dividend or withholding tax event
            activity_date: Formatted date of the event

        Returns:
            The matched activity, or None if no counterpart was emitted yet
            (the caller then appends a new activity)
        """
        if event.kind not in MATCHABLE_KINDS:
            return None

        existing = self.find_match(
            event.security.symbol,
            event.currency,
            activity_date,
            event.comment,
        )
        if existing is None:
            return None

        if self.is_tax_stub(existing):
            if event.kind == EventKind.DIVIDEND:
                existing.comment = event.comment
                existing.unit_price = event.unit_price
                existing.quantity = event.quantity
                self._tax_stubs.discard(id(existing))
        elif event.kind == EventKind.DIVIDEND_TAX:
            existing.fee = event.fee

        return existing
