"""Demo of editing a bot flow offline.

Builds a small property-enquiry flow in an InMemoryNodeStore, loads it into
a graph, edits it the way the dashboard's canvas would, saves it back and
prints the result as a Mermaid diagram. No backend or Graphviz is needed.
"""

from botflow import (
    Button, FlowNode, FlowSync, GraphEditor, InMemoryNodeStore, MermaidExporter, button_slot,
)

store = InMemoryNodeStore()
store.add("property-bot", [
    FlowNode("welcome", message_text="Hi! Welcome to Acme Homes.", default_next_node_key="menu"),
    FlowNode(
        "menu",
        message_kind="buttons",
        message_text="What would you like to do?",
        buttons=[Button("Buy", id="buy"), Button("Rent", id="rent")],
    ),
])

sync = FlowSync(store, "property-bot")
editor = GraphEditor(sync.load())

# Drop a text node on the canvas and give it a readable key
agent = editor.add_node("text", 640, 120)
editor.update_field("node_key", "agent")
editor.update_field("message_text", "Share your number and an agent will call you.")
editor.update_field("save_reply_to_field", "phone")

editor.connect("menu", agent.id, slot=button_slot("buy"))
editor.connect("menu", agent.id, slot=button_slot("rent"))

result = sync.save(editor.graph)
print(f"Saved: {result.updated} updated, {result.created} created, {result.deleted} deleted")
print()
print(MermaidExporter.to_mermaid(result.graph))
