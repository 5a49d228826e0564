"""Example showing a conditional order workflow with per-item iteration."""

import asyncio

from runback import Workflow, configure_logging


async def get_order():
    return {"id": 42, "items": ["book", "lamp"]}


def check_inventory(order):
    return len(order["items"]) > 0


def reserve(item):
    return f"reserved {item}"


async def main():
    configure_logging("info")

    workflow = Workflow(
        [
            {"id": "getOrder", "action": "getOrder"},
            {"id": "checkInventory", "action": "checkInventory", "type": "if", "options": "$ref.getOrder"},
            {
                "id": "reserve",
                "action": "reserve",
                "depends": ["checkInventory.true"],
                "each": "$ref.getOrder.items",
            },
            {"id": "notifyEmpty", "action": "notify", "depends": ["checkInventory.false"]},
        ]
    )

    actions = {
        "getOrder": get_order,
        "checkInventory": check_inventory,
        "reserve": reserve,
        "notify": lambda: print("order has no items"),
    }
    history = await workflow.run(actions=actions, entry="getOrder")
    print(history[-1].context)


if __name__ == "__main__":
    asyncio.run(main())
