"""Tests for TypeScript type synthesis."""

from tsmigrate.analyze import analyze_unit
from tsmigrate.models import LegacyType, PropDescriptor, StateDescriptor
from tsmigrate.synthesize import (
    INDEX_SIGNATURE,
    interface_fields,
    legacy_to_ts,
    state_type_argument,
    synthesize,
)


class TestLegacyMapping:
    def test_scalars(self):
        assert legacy_to_ts(LegacyType(kind="string")) == "string"
        assert legacy_to_ts(LegacyType(kind="bool")) == "boolean"
        assert legacy_to_ts(LegacyType(kind="node")) == "React.ReactNode"
        assert legacy_to_ts(LegacyType(kind="func")) == "(...args: unknown[]) => unknown"

    def test_containers(self):
        assert legacy_to_ts(LegacyType(kind="arrayOf", args=[LegacyType(kind="number")])) == "number[]"
        assert legacy_to_ts(LegacyType(kind="objectOf", args=[LegacyType(kind="string")])) == "Record<string, string>"
        union = LegacyType(kind="oneOfType", args=[LegacyType(kind="string"), LegacyType(kind="number")])
        assert legacy_to_ts(union) == "string | number"
        assert legacy_to_ts(LegacyType(kind="arrayOf", args=[union])) == "(string | number)[]"

    def test_shape(self):
        shape = LegacyType(kind="shape", fields={
            "id": LegacyType(kind="number", required=True),
            "display-name": LegacyType(kind="string"),
        })
        assert legacy_to_ts(shape) == '{ id: number; "display-name"?: string }'

    def test_one_of_with_non_literals_is_unmapped(self):
        assert legacy_to_ts(LegacyType(kind="oneOf", literals=["SIZES.sm"])) is None
        assert legacy_to_ts(LegacyType(kind="customValidator")) is None

    def test_instance_of(self):
        assert legacy_to_ts(LegacyType(kind="instanceOf", ref="Date")) == "Date"


class TestStateTypes:
    def test_nullish_initial_widens_to_unknown(self):
        assert state_type_argument(StateDescriptor(name="user", default_shape="null")) == "unknown"
        assert state_type_argument(StateDescriptor(name="x", default_shape="undefined")) == "unknown"
        assert state_type_argument(StateDescriptor(name="n", default_shape="number")) == "number"

    def test_use_state_zero(self, unit, config):
        src = """
export default function Counter() {
  const [count, setCount] = useState(0);
  return <b>{count}</b>;
}
"""
        synthesis = synthesize(analyze_unit(unit(src, "components/Counter.jsx"), config))
        assert synthesis.state_types == {"count": "number"}
        assert synthesis.unknowns == []


class TestInterface:
    def test_fields_keep_order_and_optionality(self):
        props = [
            PropDescriptor(name="label", inferred_type="string"),
            PropDescriptor(name="size", optional=True, inferred_type="'sm' | 'lg'"),
        ]
        assert interface_fields(props) == ["label: string;", "size?: 'sm' | 'lg';"]

    def test_rest_adds_index_signature(self):
        props = [PropDescriptor(name="tone", inferred_type="string"), PropDescriptor(name="...rest", is_rest=True)]
        assert interface_fields(props) == ["tone: string;", INDEX_SIGNATURE]

    def test_whole_props_only_gets_index_signature(self):
        assert interface_fields([PropDescriptor(name="props", origin="whole")]) == [INDEX_SIGNATURE]

    def test_interface_text(self, unit, config):
        src = "export default function Tag({ text, color = 'red' }) {\n  return <em>{text}</em>;\n}\n"
        synthesis = synthesize(analyze_unit(unit(src, "components/Tag.jsx"), config))
        assert synthesis.interface_name == "TagProps"
        assert synthesis.interface_text == "interface TagProps {\n  text: unknown;\n  color?: string;\n}\n"
        assert synthesis.unknowns == ["Tag: prop 'text' has unknown type"]

    def test_companion_text_imports_react_when_needed(self, unit, config):
        src = """
function Slot({ children }) {
  return <div>{children}</div>;
}
Slot.propTypes = { children: PropTypes.node };
export default Slot;
"""
        synthesis = synthesize(analyze_unit(unit(src, "components/Slot.jsx"), config), mode="external")
        assert synthesis.needs_react_namespace
        text = synthesis.companion_text()
        assert text.startswith("import type React from 'react';\n\nexport interface SlotProps {")
        assert "children?: React.ReactNode;" in text

    def test_no_interface_without_props(self, unit, config):
        src = "export const Dot = () => <i />;\n"
        synthesis = synthesize(analyze_unit(unit(src, "components/Dot.jsx"), config))
        assert synthesis.interface_name is None
        assert synthesis.interface_text is None
