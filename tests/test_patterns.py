"""Tests for rendering and behaviour pattern detection."""

from tsmigrate.models import PatternTag
from tsmigrate.patterns import detect_patterns


class TestRendering:
    def test_ternary_inside_markup(self, root):
        src = "export const A = ({ ok }) => <div>{ok ? <b>yes</b> : <i>no</i>}</div>;"
        assert PatternTag.CONDITIONAL_RENDERING in detect_patterns(root(src))

    def test_logical_and_inside_markup(self, root):
        src = "export const A = ({ ok }) => <div>{ok && <b>yes</b>}</div>;"
        assert PatternTag.CONDITIONAL_RENDERING in detect_patterns(root(src))

    def test_ternary_outside_markup_is_not_conditional_rendering(self, root):
        src = """
export function A({ ok }) {
  const label = ok ? 'yes' : 'no';
  return <div>{label}</div>;
}
"""
        assert PatternTag.CONDITIONAL_RENDERING not in detect_patterns(root(src))

    def test_map_inside_markup(self, root):
        src = "export const L = ({ items }) => <ul>{items.map((i) => <li key={i}>{i}</li>)}</ul>;"
        assert PatternTag.LIST_RENDERING in detect_patterns(root(src))

    def test_children_composition(self, root):
        src = "export const Frame = ({ children }) => <section>{children}</section>;"
        assert PatternTag.COMPOSITION in detect_patterns(root(src))

    def test_memo(self, root):
        src = "const Card = () => <div />;\nexport default React.memo(Card);\n"
        assert PatternTag.MEMOIZATION in detect_patterns(root(src))


class TestBehaviour:
    def test_fetch_in_effect(self, root):
        src = """
export function Users() {
  const [users, setUsers] = useState([]);
  useEffect(() => {
    fetch('/api/users').then((r) => r.json()).then(setUsers);
  }, []);
  return <ul />;
}
"""
        assert PatternTag.DATA_FETCHING in detect_patterns(root(src))

    def test_http_client_in_lifecycle(self, root):
        src = """
class Users extends React.Component {
  componentDidMount() {
    axios.get('/api/users');
  }
  render() {
    return <ul />;
  }
}
"""
        assert PatternTag.DATA_FETCHING in detect_patterns(root(src))

    def test_form_and_controlled_input(self, root):
        src = """
export function Login({ onSubmit }) {
  const [name, setName] = useState('');
  return (
    <form onSubmit={onSubmit}>
      <input value={name} onChange={(e) => setName(e.target.value)} />
    </form>
  );
}
"""
        tags = detect_patterns(root(src))
        assert PatternTag.FORM_HANDLING in tags
        assert PatternTag.CONTROLLED_INPUT in tags

    def test_plain_component_has_no_patterns(self, root):
        assert detect_patterns(root("export const A = () => <div>static</div>;")) == set()


class TestIdempotence:
    def test_detection_is_repeatable(self, root):
        src = """
export function Page({ items, children }) {
  useEffect(() => { fetch('/x'); }, []);
  return <main>{items.length > 0 && items.map((i) => <p key={i}>{i}</p>)}{children}</main>;
}
"""
        tree = root(src)
        first = detect_patterns(tree)
        assert detect_patterns(tree) == first
        assert {PatternTag.CONDITIONAL_RENDERING, PatternTag.LIST_RENDERING,
                PatternTag.DATA_FETCHING, PatternTag.COMPOSITION} <= first

    def test_missing_tree(self):
        assert detect_patterns(None) == set()
