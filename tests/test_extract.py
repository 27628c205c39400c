"""Tests for inventory extraction (props, hooks, class members, imports)."""

from tsmigrate.aliases import AliasTable, DEFAULT_ALIASES
from tsmigrate.analyze import analyze_unit
from tsmigrate.classify import classify
from tsmigrate.extract import extract, extract_imports


def _props(profile):
    return {p.name: p for p in profile.props}


class TestProps:
    def test_destructured_defaults(self, unit, config):
        src = """
export default function Button({ size = 'md', disabled = false, onClick }) {
  return <button disabled={disabled} onClick={onClick}>{size}</button>;
}
"""
        profile = analyze_unit(unit(src, "components/Button.jsx"), config)
        props = _props(profile)

        assert list(props) == ["size", "disabled", "onClick"]
        assert props["size"].optional is True
        assert props["size"].default_literal == "'md'"
        assert props["size"].inferred_type == "string"
        assert props["disabled"].inferred_type == "boolean"
        assert props["onClick"].optional is False
        assert props["onClick"].inferred_type == "unknown"

    def test_prop_types_and_default_props(self, unit, config):
        src = """
import PropTypes from 'prop-types';

function Avatar({ src, size }) {
  return <img src={src} width={size === 'sm' ? 16 : 32} />;
}

Avatar.propTypes = {
  src: PropTypes.string.isRequired,
  size: PropTypes.oneOf(['sm', 'lg']),
  tags: PropTypes.arrayOf(PropTypes.string),
};

Avatar.defaultProps = { size: 'sm' };

export default Avatar;
"""
        profile = analyze_unit(unit(src, "components/Avatar.jsx"), config)
        props = _props(profile)

        assert props["src"].optional is False
        assert props["src"].inferred_type == "string"
        assert props["size"].optional is True
        assert props["size"].default_literal == "'sm'"
        assert props["size"].inferred_type == "'sm' | 'lg'"
        assert props["tags"].inferred_type == "string[]"

    def test_whole_props_parameter_is_one_opaque_entry(self, unit, config):
        src = "export function Label(props) {\n  return <span>{props.text}</span>;\n}\n"
        profile = analyze_unit(unit(src, "components/Label.jsx"), config)
        assert len(profile.props) == 1
        assert profile.props[0].is_whole
        assert profile.props[0].name == "props"

    def test_rest_props(self, unit, config):
        src = "export const Box = ({ tone, ...rest }) => <div {...rest} />;\n"
        profile = analyze_unit(unit(src, "components/Box.jsx"), config)
        names = [p.name for p in profile.props]
        assert names == ["tone", "...rest"]
        assert profile.props[1].is_rest

    def test_non_components_have_no_props(self, unit, config):
        src = "export function useThing(options) {\n  return options;\n}\n"
        profile = analyze_unit(unit(src, "components/useThing.js"), config)
        assert profile.props == []


class TestHooks:
    SRC = """
import React, { useState, useEffect, useRef, useContext, useCallback, useMemo } from 'react';
import { useFetch } from '../hooks/useFetch';
import { ThemeContext } from './theme';

export default function Dashboard({ id }) {
  const [count, setCount] = useState(0);
  const [user, setUser] = useState(null);
  const [state, dispatch] = React.useReducer(reducer, { items: [] });
  const inputRef = useRef(null);
  const theme = useContext(ThemeContext);
  const onSave = useCallback(() => setCount(count + 1), [count]);
  const total = useMemo(() => count * 2, [count]);
  const data = useFetch(`/api/${id}`);
  const more = useFetch('/api/more');

  useEffect(() => {
    const t = setInterval(() => setCount((c) => c + 1), 1000);
    return () => clearInterval(t);
  }, []);

  useEffect(() => {
    document.title = String(count);
  }, [count]);

  useEffect(() => {});

  return <div ref={inputRef}>{total}</div>;
}
"""

    def test_state(self, unit, config):
        profile = analyze_unit(unit(self.SRC, "components/Dashboard.jsx"), config)
        state = {s.name: s for s in profile.state}

        assert state["count"].setter_name == "setCount"
        assert state["count"].inferred_type == "number"
        assert state["count"].default_literal == "0"
        assert state["user"].inferred_type == "null"
        assert state["state"].hook == "useReducer"
        assert state["state"].default_shape == "object"

    def test_effects(self, unit, config):
        profile = analyze_unit(unit(self.SRC, "components/Dashboard.jsx"), config)
        mount, deps, every = profile.effects

        assert mount.trigger == "mount"
        assert mount.dependencies == []
        assert mount.has_cleanup is True
        assert deps.trigger == "deps"
        assert deps.dependencies == ["count"]
        assert deps.has_cleanup is False
        assert every.trigger == "every-render"
        assert every.dependencies is None

    def test_refs_context_callbacks(self, unit, config):
        profile = analyze_unit(unit(self.SRC, "components/Dashboard.jsx"), config)

        assert [(r.name, r.initial_literal) for r in profile.refs] == [("inputRef", "null")]
        assert [(c.context, c.variable) for c in profile.contexts] == [("ThemeContext", "theme")]
        assert [(c.hook, c.name, c.dependencies) for c in profile.callbacks] == [
            ("useCallback", "onSave", ["count"]),
            ("useMemo", "total", ["count"]),
        ]

    def test_custom_hooks_are_counted_with_source(self, unit, config):
        profile = analyze_unit(unit(self.SRC, "components/Dashboard.jsx"), config)
        assert len(profile.hooks) == 1
        hook = profile.hooks[0]
        assert hook.name == "useFetch"
        assert hook.source == "../hooks/useFetch"
        assert hook.count == 2

    def test_lazy_initializer_uses_returned_value(self, unit, config):
        src = "export function List() {\n  const [items] = useState(() => []);\n  return <ul />;\n}\n"
        profile = analyze_unit(unit(src, "components/List.jsx"), config)
        assert profile.state[0].inferred_type == "unknown[]"


class TestClassMembers:
    SRC = """
import React from 'react';

export default class Counter extends React.Component {
  state = { count: 0, label: 'clicks' };

  componentDidMount() {
    this.timer = setInterval(() => this.tick(), 1000);
  }

  componentWillUnmount() {
    clearInterval(this.timer);
  }

  render() {
    const { step } = this.props;
    return <span title={this.props.title}>{this.state.count + step}</span>;
  }
}
"""

    def test_class_state_and_lifecycle(self, unit, config):
        profile = analyze_unit(unit(self.SRC, "components/Counter.jsx"), config)

        assert [(s.name, s.inferred_type, s.hook) for s in profile.state] == [
            ("count", "number", "class"),
            ("label", "string", "class"),
        ]
        assert [(e.hook, e.trigger) for e in profile.effects] == [
            ("componentDidMount", "mount"),
            ("componentWillUnmount", "unmount"),
        ]

    def test_class_props_from_member_access(self, unit, config):
        profile = analyze_unit(unit(self.SRC, "components/Counter.jsx"), config)
        assert sorted(p.name for p in profile.props) == ["step", "title"]

    def test_constructor_state(self, unit, config):
        src = """
class Toggle extends Component {
  constructor(props) {
    super(props);
    this.state = { on: false };
  }
  render() {
    return <button>{String(this.state.on)}</button>;
  }
}
export default Toggle;
"""
        profile = analyze_unit(unit(src, "components/Toggle.jsx"), config)
        assert [(s.name, s.inferred_type) for s in profile.state] == [("on", "boolean")]


class TestImports:
    def test_import_forms(self, root):
        src = """
import Button from './Button';
import * as api from '@/lib/api';
import axios from 'axios';
export { helper } from '@components/helpers';
const legacy = require('./legacy');
"""
        records = extract_imports(root(src), AliasTable(DEFAULT_ALIASES))
        assert [(r.specifier, r.internal) for r in records] == [
            ("./Button", True),
            ("@/lib/api", True),
            ("axios", False),
            ("@components/helpers", True),
            ("./legacy", True),
        ]
        assert records[1].names == ["api"]
        assert records[3].names == ["helper"]

    def test_extract_never_raises_on_missing_tree(self):
        classification = classify(None, "components/X.jsx")
        inv = extract("components/X.jsx", None, classification, AliasTable(DEFAULT_ALIASES))
        assert inv.props == [] and inv.imports == []


class TestDeterminism:
    def test_profile_is_stable_across_runs(self, unit, config):
        src = TestHooks.SRC
        first = analyze_unit(unit(src, "components/Dashboard.jsx"), config)
        second = analyze_unit(unit(src, "components/Dashboard.jsx"), config)
        assert first.props == second.props
        assert first.state == second.state
        assert first.effects == second.effects
        assert first.patterns == second.patterns
        assert first.complexity == second.complexity
