"""Example task graph using walkgraph.

Builds a small project plan under the root, persists it to a JSON
database, reloads it in a fresh context and walks it.

Run with: python examples/task_graph.py
"""

import asyncio
import tempfile

from walkgraph import configure_logging
from walkgraph.core import (
    Edge,
    GraphContext,
    Node,
    Root,
    Walker,
    on_exit,
    on_visit,
    where,
)
from walkgraph.db import JsonDB


class Project(Node):
    """A project grouping tasks."""

    name: str


class Task(Node):
    """A unit of work with a priority from 1 (low) to 5 (high)."""

    title: str
    priority: int = 1
    done: bool = False


class DependsOn(Edge):
    """Task must wait for the target task."""


class UrgentTasks(Walker):
    """Collects open tasks at or above a priority threshold."""

    threshold: int = 3

    @on_visit(Root)
    async def start(self, visit):
        await self.visit(await visit.here.nodes(node=Project))

    @on_visit(Project)
    async def open_tasks(self, visit):
        await self.visit(
            await visit.here.nodes(
                node=Task, done=False, priority={"$gte": self.threshold}
            )
        )

    @on_visit(Task)
    def collect(self, visit):
        self.report({"title": visit.here.title, "priority": visit.here.priority})

    @on_exit
    def summary(self):
        print(f"Found {len(self.reports)} urgent task(s)")


async def build(context: GraphContext) -> None:
    root = await context.get_root()
    project = await context.create_node(Project, name="Launch")
    await context.connect(root, project)

    tasks = {}
    for title, priority, done in [
        ("Write docs", 2, False),
        ("Fix login bug", 5, False),
        ("Release notes", 3, True),
        ("Load test", 4, False),
    ]:
        task = await context.create_node(Task, title=title, priority=priority, done=done)
        await context.connect(project, task)
        tasks[title] = task

    await context.connect(tasks["Load test"], tasks["Fix login bug"], edge=DependsOn)


async def main() -> None:
    configure_logging("INFO")
    with tempfile.TemporaryDirectory() as path:
        await build(GraphContext(database=JsonDB(path)))

        # A fresh context sees everything reachable from the root
        context = GraphContext(database=JsonDB(path))
        walker = UrgentTasks(threshold=4)
        walker.set_context(context)
        await walker.spawn()
        for item in walker.reports:
            print(f"  {item['priority']}  {item['title']}")

        load_test = (await context.all_nodes(where(Task, title="Load test")))[0]
        blockers = await load_test.nodes(edge=DependsOn)
        print(f"'Load test' waits for: {[t.title for t in blockers]}")


if __name__ == "__main__":
    asyncio.run(main())
