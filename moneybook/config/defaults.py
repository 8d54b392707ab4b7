"""
Default data tables.

DEFAULT_CATEGORIES is the set created for a user who has no categories
yet, and shown read-only to a guest. It is passed to DataSync rather than
read from here directly, so tests and deployments can inject their own.
"""

from moneybook.models.records import CategoryInput, TransactionKind


# Stable key -> category. Keys become ids of the read-only guest copies.
DEFAULT_CATEGORIES: dict[str, CategoryInput] = {
    # Income
    "salary": CategoryInput(name="Salary", icon="💰", color="#0088FE", kind=TransactionKind.INCOME),
    "freelance": CategoryInput(name="Freelance", icon="💼", color="#00C49F", kind=TransactionKind.INCOME),
    "investment": CategoryInput(name="Investment", icon="📈", color="#FFBB28", kind=TransactionKind.INCOME),
    "other-income": CategoryInput(name="Other Income", icon="💵", color="#FF8042", kind=TransactionKind.INCOME),
    # Expense
    "food": CategoryInput(name="Food", icon="🍔", color="#8884d8", kind=TransactionKind.EXPENSE),
    "transport": CategoryInput(name="Transport", icon="🚗", color="#82ca9d", kind=TransactionKind.EXPENSE),
    "utilities": CategoryInput(name="Utilities", icon="💡", color="#ffc658", kind=TransactionKind.EXPENSE),
    "entertainment": CategoryInput(name="Entertainment", icon="🎮", color="#ff7c7c", kind=TransactionKind.EXPENSE),
    "shopping": CategoryInput(name="Shopping", icon="🛍️", color="#8dd1e1", kind=TransactionKind.EXPENSE),
    "healthcare": CategoryInput(name="Healthcare", icon="🏥", color="#d084d0", kind=TransactionKind.EXPENSE),
    "education": CategoryInput(name="Education", icon="📚", color="#0088FE", kind=TransactionKind.EXPENSE),
    "other-expense": CategoryInput(name="Other Expense", icon="💸", color="#00C49F", kind=TransactionKind.EXPENSE),
}

# Shown for transactions whose category or account no longer exists
UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_ICON = "❓"
UNCATEGORIZED_COLOR = "#9ca3af"
