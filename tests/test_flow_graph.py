from wabot_flow.models.flow_data import FlowGraph, ConditionNode, MessageNode, InputNode


def test_nodes_are_parsed_by_type(graph_data):
    graph = FlowGraph.model_validate(graph_data)

    assert isinstance(graph.get_node("1"), InputNode)
    assert isinstance(graph.get_node("2"), MessageNode)
    condition_node = graph.get_node("3")
    assert isinstance(condition_node, ConditionNode)
    # Builder exports use camelCase nextNode
    assert [c.next_node for c in condition_node.conditions] == ["4", "5"]


def test_builder_fields_are_kept(graph_data):
    data = graph_data
    data["nodes"][1]["style"] = {"background": "#fff"}

    graph = FlowGraph.model_validate(data)

    assert graph.model_dump()["nodes"][1]["style"] == {"background": "#fff"}


def test_next_node_follows_first_outgoing_edge(graph_data):
    graph = FlowGraph.model_validate(graph_data)

    assert graph.get_next_node_id("1") == "2"
    assert graph.get_next_node_id("2") == "3"
    assert graph.get_next_node_id("4") is None


def test_valid_graph_has_no_errors(graph_data):
    assert FlowGraph.model_validate(graph_data).validate_graph() == []


def test_validation_reports_dangling_references(graph_data):
    data = graph_data
    data["nodes"].append({"id": "2", "type": "message", "content": "duplicate"})
    data["edges"].append({"id": "e-missing", "source": "4", "target": "42"})
    data["nodes"][2]["conditions"].append({"operator": "Eval", "value": "1", "next_node": "77"})

    errors = FlowGraph.model_validate(data).validate_graph()

    assert "Duplicate node id '2'" in errors
    assert any("'42'" in error for error in errors)
    assert any("unsupported operator 'Eval'" in error for error in errors)
    assert any("missing node '77'" in error for error in errors)
