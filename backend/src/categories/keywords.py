"""Keyword expansion for category embedding text.

Short generic category names ("Rent", "Other") embed poorly on their own.
The source text for a category embedding is its name, its description and
a fixed keyword list for the well-known slugs below.
"""

from typing import Optional

CATEGORY_KEYWORDS = {
    "software": "software subscription SaaS license cloud hosting tools development",
    "office-supplies": "office supplies equipment furniture stationery printer paper",
    "travel": "travel transportation flight hotel accommodation taxi uber bolt",
    "meals": "food restaurant cafe lunch dinner catering meals entertainment",
    "marketing": "marketing advertising ads promotion campaign social media",
    "utilities": "utilities electricity water gas internet phone telecom",
    "rent": "rent lease office space premises location building",
    "salaries": "salary wages payroll employee compensation bonus",
    "taxes": "tax VAT PDV government payment fiscal",
    "insurance": "insurance premium coverage policy protection",
    "professional-services": "consulting legal accounting advisory professional services",
    "bank-fees": "bank fees charges transfer wire commission payment processing",
    "income": "income revenue payment received sales customer",
    "refunds-received": "refund return credit reimbursement",
    "other": "miscellaneous other general uncategorized",
}


def get_category_keywords(slug: str) -> str:
    return CATEGORY_KEYWORDS.get(slug, "")


def build_category_embedding_text(name: str, description: Optional[str], slug: str) -> str:
    """Join name, description and slug keywords with ". ", skipping empty parts.

    Example:
        >>> build_category_embedding_text("Rent", None, "rent")
        'Rent. rent lease office space premises location building'
    """
    parts = [name, description or "", get_category_keywords(slug)]
    return ". ".join(part for part in parts if part)
