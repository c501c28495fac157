from tracery_grammar.core.expand.syntax import Binding, Reference, Text, bindings, parse, references


def test_plain_text_is_single_text_node():
    assert parse("just words") == [Text("just words")]
    assert parse("") == []


def test_reference_with_modifier_chain():
    nodes = parse("a #animal.s.capitalize# flew")
    assert nodes[0] == Text("a ")
    ref = nodes[1]
    assert isinstance(ref, Reference)
    assert ref.symbol == "animal"
    assert ref.modifiers == ("s", "capitalize")
    assert ref.raw == "#animal.s.capitalize#"
    assert nodes[2] == Text(" flew")


def test_hash_inside_binding_does_not_close_reference():
    (ref,) = parse("#[hero:#name#][pet:#animal#]story#")
    assert isinstance(ref, Reference)
    assert ref.symbol == "story"
    assert ref.bindings == (
        Binding(raw="[hero:#name#]", name="hero", rule="#name#"),
        Binding(raw="[pet:#animal#]", name="pet", rule="#animal#"),
    )


def test_bare_binding_has_no_rule():
    (ref,) = parse("#[setup]origin#")
    assert isinstance(ref, Reference)
    assert ref.bindings == (Binding(raw="[setup]", name="setup", rule=None),)


def test_binding_splits_on_first_colon():
    (b,) = parse("[time:12:30]")
    assert b == Binding(raw="[time:12:30]", name="time", rule="12:30")


def test_nested_binding_rules_balance_brackets():
    (ref,) = parse("#[a:#[b:#x#]y#]a#")
    assert isinstance(ref, Reference)
    assert ref.symbol == "a"
    assert ref.bindings[0].rule == "#[b:#x#]y#"


def test_unterminated_hash_is_literal():
    assert parse("issue #42 is open") == [Text("issue #42 is open")]
    nodes = parse("#a# and #b")
    assert isinstance(nodes[0], Reference)
    assert nodes[1] == Text(" and #b")


def test_unterminated_bracket_is_literal():
    assert parse("[hero:#name#") == [Text("[hero:#name#")]


def test_double_hash_is_literal():
    assert parse("##") == [Text("##")]
    assert parse("a ## b") == [Text("a ## b")]


def test_double_hash_before_reference():
    nodes = parse("###x#")
    assert nodes[0] == Text("##")
    assert isinstance(nodes[1], Reference)
    assert nodes[1].symbol == "x"


def test_references_walks_into_binding_rules():
    names = [r.symbol for r in references("#[hero:#name.capitalize#][pet]story# [x:#y#]")]
    assert names == ["story", "name", "pet", "y"]


def test_bindings_walks_nested_rules():
    found = [(b.name, b.rule) for b in bindings("#[a:#[b:#x#]y#]a#")]
    assert found == [("a", "#[b:#x#]y#"), ("b", "#x#")]
