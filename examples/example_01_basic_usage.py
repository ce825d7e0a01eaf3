"""Example 01: Basic Usage - Keys, Entities and Queries.

This example demonstrates the fundamental operations:
- Building hierarchical keys with Key.root().append()
- Storing entities with put() and letting the store assign ids
- Reading them back with get() and get_multi()
- Ancestor-scoped queries with filters and sort orders
- Handling per-index lookup misses with GetMultiError
"""

import logging

from pathstore import KEY_NAME, GetMultiError, Key, MemoryStore, Query, prop


def main():
    """Run the basic usage example."""
    logging.basicConfig(level=logging.INFO)

    print("=" * 80)
    print("PATHSTORE BASIC USAGE EXAMPLE")
    print("=" * 80)

    store = MemoryStore()

    # Step 1: Build keys
    # A key is a namespaced path of (kind, id) pairs. Leaving the leaf id
    # out makes the key incomplete; put() fills it in.
    alice = Key.root().append("User", "alice")
    bob = Key.root().append("User", "bob")

    print("\nAdding users...")
    store.put(
        [alice, bob],
        [
            {"Name": "Alice", "Age": 32, "Tags": ["admin", "ops"]},
            {"Name": "Bob", "Age": 27, "Tags": ["dev"]},
        ],
    )
    print(f"  ✓ Stored {len(store)} users")

    # Step 2: Child entities share their parent's entity group
    print("\nAdding tasks under each user...")
    task_keys = store.put(
        [alice.append("Task"), alice.append("Task"), bob.append("Task")],
        [
            {"Title": "Rotate keys", "Priority": 2},
            {"Title": "Review alerts", "Priority": 5},
            {"Title": "Fix login bug", "Priority": 3},
        ],
    )
    for key in task_keys:
        print(f"  ✓ {key}")

    # Step 3: Read back
    print("\nReading users...")
    for entity in store.get_multi([alice, bob]):
        print(f"  - {entity['Name']:10} age {entity['Age']}")

    # Step 4: Ancestor query
    # Only Alice's tasks, highest priority first.
    print("\nAlice's tasks by priority:")
    query = Query(alice.append("Task")).order("-Priority")
    for key, task in store.run(query):
        print(f"  - [{task['Priority']}] {task['Title']} ({key})")

    # Step 5: Multi-valued filters match if any element matches
    print("\nUsers tagged 'ops':")
    query = Query(Key.root().append("User")).where(prop("Tags") == "ops").order(KEY_NAME)
    for key in store.run(query.only_keys()).keys():
        print(f"  - {key.id}")

    # Step 6: Lookup misses are reported per index
    print("\nLooking up a missing user...")
    try:
        store.get_multi([alice, Key.root().append("User", "carol")])
    except GetMultiError as e:
        print(f"  ✓ Missing indices: {e.indices}")
        print(f"  ✓ Found entities still available: {e.results[0]['Name']}")

    print("\n" + "=" * 80)
    print("EXAMPLE COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
