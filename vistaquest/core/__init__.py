"""Turn orchestration core: history store, transactions, orchestrator."""
