"""Example 02: Transactions and Error Handling.

This example demonstrates deferred-commit transactions:
- run_in_transaction() commits queued writes when the body returns
- An exception inside the body discards every queued write
- Reads inside a transaction do not see its own pending writes
- Nested transactions raise TransactionStateError
- Typed access through ModelClient and pydantic models
"""

import logging

from pydantic import BaseModel, Field

from pathstore import (
    Key,
    MemoryStore,
    ModelClient,
    PathstoreConfig,
    TransactionStateError,
    ValidationError,
)


class Account(BaseModel):
    """A bank account stored as an entity."""

    owner: str = Field(alias="Owner")
    balance: int = Field(alias="Balance")


class InsufficientFunds(Exception):
    pass


def transfer(client: ModelClient, source: Key, target: Key, amount: int) -> None:
    def body(tx: ModelClient) -> None:
        src, dst = tx.get(Account, [source, target])
        if src.balance < amount:
            raise InsufficientFunds(f"{src.owner} has only {src.balance}")
        tx.put(
            [source, target],
            [
                src.model_copy(update={"balance": src.balance - amount}),
                dst.model_copy(update={"balance": dst.balance + amount}),
            ],
        )

    client.run_in_transaction(body)


def show(client: ModelClient, keys: list[Key]) -> None:
    for account in client.get(Account, keys):
        print(f"  - {account.owner:8} {account.balance:5}")


def main():
    """Run the transactions example."""
    logging.basicConfig(level=logging.INFO)

    print("=" * 80)
    print("PATHSTORE TRANSACTIONS EXAMPLE")
    print("=" * 80)

    store = MemoryStore(PathstoreConfig(default_namespace="bank", log_operations=True))
    client = ModelClient(store)

    keys = client.put(
        [store.new_key("Account"), store.new_key("Account")],
        [Account(Owner="alice", Balance=100), Account(Owner="bob", Balance=20)],
    )
    alice, bob = keys
    print("\nInitial balances:")
    show(client, keys)

    # Successful transfer commits both writes together.
    print("\nTransferring 30 from alice to bob...")
    transfer(client, alice, bob, 30)
    show(client, keys)

    # A failing body leaves the store untouched.
    print("\nTransferring 500 from bob to alice...")
    try:
        transfer(client, bob, alice, 500)
    except InsufficientFunds as e:
        print(f"  ✓ Aborted: {e}")
    show(client, keys)

    # Reads inside the transaction see the store, not the pending writes.
    print("\nPending writes are invisible until commit...")
    with store.transaction() as tx:
        tx.delete([bob])
        print(f"  ✓ bob still readable inside transaction: {tx.get([bob])[0].found}")
        print(f"  ✓ queued operations: {[op.kind.value for op in tx.pending]}")
    print(f"  ✓ bob after commit: {bob in store}")

    # Nested transactions are rejected.
    print("\nNesting transactions...")
    try:
        store.run_in_transaction(lambda tx: tx.run_in_transaction(lambda inner: None))
    except TransactionStateError as e:
        print(f"  ✓ TransactionStateError: {e}")

    # Malformed calls fail before anything is applied.
    print("\nPutting mismatched keys and entities...")
    try:
        store.put([alice], [{}, {}])
    except ValidationError as e:
        print(f"  ✓ ValidationError: {e}")

    print("\n" + "=" * 80)
    print("EXAMPLE COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
