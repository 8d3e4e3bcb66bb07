"""
Basic Usage Example

This example demonstrates the core repokit workflow:
- Mapping entities with the modeling conventions
- Wiring a data layer from an operation context
- Staging changes through repositories and saving them atomically
- Grouping several saves in an explicit transaction scope
- Checking database health

Run with: python examples/basic_usage.py
(requires the sqlite extra: pip install "repokit[sqlite]")
"""

import asyncio
import logging

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from repokit import (
    DataOptions,
    OperationContext,
    OperationContextAccessor,
    create_data_layer,
    validate_data_layer,
)
from repokit.sqlalchemy import SnakeCaseTableMixin, create_metadata

# =============================================================================
# Step 1: Map Entities
# =============================================================================
# Table names are derived from class names and constraints get
# deterministic names from the metadata's naming convention.


class Base(DeclarativeBase):
    metadata = create_metadata()


class Customer(SnakeCaseTableMixin, Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(200), unique=True)


class SalesOrder(SnakeCaseTableMixin, Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customer.id"))
    total: Mapped[int] = mapped_column(default=0)


# =============================================================================
# Step 2: Wire the Data Layer
# =============================================================================


async def main():
    """Demonstrate basic repokit usage."""
    logging.basicConfig(level=logging.INFO)
    print("=" * 60)
    print("repokit Basic Usage Example")
    print("=" * 60)

    contexts = OperationContextAccessor()
    layer = validate_data_layer(
        create_data_layer(
            "sqlite+aiosqlite:///:memory:",
            DataOptions(enable_tracing=False),
            context_accessor=contexts,
            engine_options={"poolclass": StaticPool},
        )
    )

    async with layer.engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    try:
        with contexts.scope(OperationContext.new(tenant_id="acme")):
            # =================================================================
            # Step 3: Stage and Save
            # =================================================================
            print("\n1. Saving a customer and an order atomically")
            async with layer.unit_of_work_factory.create() as uow:
                await uow.repository(Customer).add(
                    Customer(id=1, name="Alice", email="alice@example.com")
                )
                await uow.repository(SalesOrder).add(SalesOrder(id=1, customer_id=1, total=40))
                written = await uow.save_changes()
                print(f"   Rows written: {written}")

            # =================================================================
            # Step 4: Explicit Transaction Scope
            # =================================================================
            print("\n2. Two saves inside one transaction, then rollback")
            async with layer.unit_of_work_factory.create() as uow:
                orders = uow.repository(SalesOrder)
                async with await uow.begin_transaction() as scope:
                    await orders.add(SalesOrder(id=2, customer_id=1, total=15))
                    await uow.save_changes()
                    await orders.add(SalesOrder(id=3, customer_id=1, total=25))
                    await uow.save_changes()
                    await scope.rollback()
                print(f"   Orders after rollback: {await orders.count()}")

            # =================================================================
            # Step 5: Query
            # =================================================================
            print("\n3. Querying")
            async with layer.unit_of_work_factory.create() as uow:
                customers = uow.repository(Customer)
                alice = await customers.find_one(Customer.email == "alice@example.com")
                big_orders = await uow.repository(SalesOrder).find(SalesOrder.total > 20)
                print(f"   Found {alice.name}; {len(big_orders)} order(s) over 20")

        # =====================================================================
        # Step 6: Health
        # =====================================================================
        print("\n4. Health report")
        report = await layer.check_health()
        for name, result in report.results.items():
            print(f"   {name}: {result.status.value} ({result.description})")
    finally:
        await layer.dispose()


if __name__ == "__main__":
    asyncio.run(main())
