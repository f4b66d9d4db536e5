"""Host environment: ledger, keys, transactions and atomic execution."""
