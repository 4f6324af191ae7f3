"""
Expenditure Eligibility Policy

Decides whether an expenditure counts against eligible grant spend.
"""

from typing import Protocol

from .models import ExpenditureEligibility, GrantExpenditure


class EligibilityPolicy(Protocol):
    def is_ineligible(self, expenditure: GrantExpenditure) -> bool:
        ...


class KeywordEligibilityPolicy:
    """Classifies expenditures by their entry-time eligibility value.

    Expenditures recorded before eligibility was captured at entry time fall
    back to a keyword match over their compliance tags.
    """

    def __init__(self, keywords: list[str]):
        self.keywords = [k.lower() for k in keywords if k]

    def is_ineligible(self, expenditure: GrantExpenditure) -> bool:
        if expenditure.eligibility is not None:
            return expenditure.eligibility == ExpenditureEligibility.INELIGIBLE
        return any(self.matches(tag) for tag in expenditure.compliance_tags or [])

    def matches(self, tag: str) -> bool:
        text = tag.lower()
        return any(keyword in text for keyword in self.keywords)
