"""
Procurement Modules.

Thin orchestration layers over the Procurement Kernel and Engines.
Each module contains:
- Domain models (the nouns)
- Workflows (state machines)
- Services where a module owns a lifecycle (debts)

Modules:
- Procurement: Purchase orders, drafts, contract binding, goods receipts
- Contracts: Supply contracts, payment terms
- Partners: Suppliers and their debt policy
- Debts: Supplier debts, payments, recognition

Actual calculation logic lives in the engines.
"""
