"""
Queue Controller Test Suite.

- Aggregation tests (pod group phase counting)
- Lifecycle policy and state selection tests
- Reconcile action tests (sync / open / close)
- Store tests (versioned writes, pod groups, events)
- Worker tests (coalescing, requeue, serialization)
- Service end-to-end tests
"""
