"""Order pipeline demo application entrypoint.

Two handlers run for every ``order.created`` event: a stock reservation
followed by a confirmation. The second order asks for more stock than the
warehouse holds, so the pipeline halts on it and the third order waits.
After restocking, a restart clears the error and the queue drains.

Usage:
    python -m durabus.apps.orders.main
"""

import asyncio

from durabus.apps.orders.handlers import Notifier, Warehouse
from durabus.core.dispatcher import Dispatcher
from durabus.core.record import EventRecord
from durabus.datastores.inmemory import InMemoryDatastore

ORDERS = [
    {"id": 1, "sku": "lantern", "quantity": 2},
    {"id": 2, "sku": "lantern", "quantity": 5},
    {"id": 3, "sku": "candle", "quantity": 1},
]


async def run_orders(enable_log: bool = False) -> list[EventRecord]:
    """Run the demo and return every record in publish order."""
    datastore = InMemoryDatastore()
    warehouse = Warehouse({"lantern": 3, "candle": 10})
    notifier = Notifier()

    dispatcher = Dispatcher(datastore, enable_log=enable_log, single_flight=True)
    dispatcher.register("order.created", warehouse.reserve)
    dispatcher.register("order.created", notifier.confirm)

    for order in ORDERS:
        await dispatcher.publish("order.created", order)
    await dispatcher.drain()

    warehouse.restock("lantern", 10)
    await dispatcher.restart()
    await dispatcher.drain()

    # The restart processed order 2 only; order 3 needs one more attempt
    while await datastore.get_event() is not None:
        await dispatcher.restart()
        await dispatcher.drain()

    return datastore.all_events()


def main() -> None:
    """Main entry point for the order pipeline demo."""
    records = asyncio.run(run_orders(enable_log=True))
    for record in records:
        print(f"{record.name} {record.payload['id']}: {record.state.value}")


if __name__ == "__main__":
    main()
