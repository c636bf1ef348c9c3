"""Permission catalogue and built-in role grants."""

from __future__ import annotations

# (code, description, module)
ALL_PERMISSION_CODES: list[tuple[str, str, str]] = [
    ("finance.account:view", "View accounts, balances and ledgers", "finance"),
    ("finance.account:create", "Create accounts", "finance"),
    ("finance.flow:view", "View cash flows", "finance"),
    ("finance.flow:create", "Record cash flows", "finance"),
    ("finance.flow:import", "Import cash flows from CSV", "finance"),
    ("finance.*:view", "View every finance resource", "finance"),
]

ROLE_PERMISSIONS: dict[str, list[str]] = {
    "ADMIN": [
        "finance.account:view",
        "finance.account:create",
        "finance.flow:view",
        "finance.flow:create",
        "finance.flow:import",
    ],
    "ACCOUNTANT": [
        "finance.account:view",
        "finance.flow:view",
        "finance.flow:create",
        "finance.flow:import",
    ],
    "AUDITOR": ["finance.*:view"],
}
