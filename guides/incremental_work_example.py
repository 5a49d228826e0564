"""Example showing how to build a workflow one step at a time with Work."""

import asyncio

from runback import Work, Workflow2


async def main():
    work = Work(
        actions={
            "getUrls": lambda: ["https://a.example", "https://b.example"],
            "fetch": lambda item: {"url": item["url"], "status": 200},
        },
        save_path="work_example.json",
        workflow_cls=Workflow2,
    )

    await work.step({"id": "getUrls", "action": "getUrls"})
    await work.step(
        {
            "id": "fetch",
            "action": "fetch",
            "each": True,
            "input": [{"url": "", "timeout": 30}],
            "ref": {"[].url": "getUrls"},
        }
    )
    print(work.last_run.context["fetch"])


if __name__ == "__main__":
    asyncio.run(main())
