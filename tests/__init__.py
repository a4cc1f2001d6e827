"""
Test suite for the glue-sync replication agent.

Unit tests cover each component in isolation against an in-memory remote
endpoint; the service and CLI tests run the whole pipeline end to end.
"""
