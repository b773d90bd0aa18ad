"""
HTTP API example using walkgraph

Publishes one walker and one function and serves them with uvicorn.
Every account gets its own graph under ./wgdb/<account id>.

Run with: python examples/api_server.py

    curl -X POST localhost:8000/user/register \
        -H 'Content-Type: application/json' \
        -d '{"email": "ann@example.com", "password": "secret1"}'
    curl -X POST localhost:8000/user/login ...    # copy access_token
    curl -X POST localhost:8000/walker/AddNote \
        -H "Authorization: Bearer $TOKEN" -d '{"text": "hello"}'
    curl -X POST localhost:8000/function/note_count -H "Authorization: Bearer $TOKEN"
"""

from walkgraph.api import RunnerRegistry, ServerConfig, create_app, endpoint, serve
from walkgraph.core import Node, Root, Walker, on_visit


class Note(Node):
    text: str = ""


@endpoint
class AddNote(Walker):
    """Attach a note to the caller's root and list every note."""

    text: str = ""

    @on_visit(Root)
    async def add(self, visit):
        if self.text:
            note = await visit.context.create_node(Note, text=self.text)
            await visit.here.connect(note)
        await self.visit(await visit.here.nodes(node=Note))

    @on_visit(Note)
    def collect(self, visit):
        self.report(visit.here.text)


@endpoint(name="note_count")
async def count_notes(context):
    return len(await context.all_nodes(Note))


app = create_app(
    RunnerRegistry(db_type="json", base_path="wgdb"),
    config=ServerConfig(title="Notes API", description="walkgraph notes example"),
)


if __name__ == "__main__":
    serve(app, port=8000)
