import ast
import re

_PLACEHOLDER = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")

_ALLOWED_COMPARATORS = (
    ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE, ast.In, ast.NotIn, ast.Is, ast.IsNot,
)


def check_condition_syntax(expression: str) -> bool:
    """
    Check that a condition-edge expression is well formed.

    The engine never evaluates conditions; it only checks that they are boolean
    or comparison expressions over names, attribute paths and `{{node.field}}`
    placeholders. Empty and "true" conditions are accepted.
    """
    if not isinstance(expression, str):
        return False
    expression = expression.strip()
    if expression.lower() in ("true", "false", ""):
        return True

    expression = expression.replace("&&", " and ").replace("||", " or ")
    expression = _replace_placeholders(expression)
    if expression is None:
        return False
    try:
        node = ast.parse(expression, mode="eval")
        return _is_supported(node)
    except (SyntaxError, ValueError, RecursionError, MemoryError):
        # deeply nested input is treated as malformed
        return False


def _replace_placeholders(expression: str):
    refs = []

    def _sub(match):
        ref = match.group(1)
        if not ref:
            refs.append(None)
            return ""
        refs.append(ref)
        return f"__ref_{len(refs)}"

    replaced = _PLACEHOLDER.sub(_sub, expression)
    if any(ref is None for ref in refs) or "{{" in replaced or "}}" in replaced:
        return None
    return replaced


def _is_supported(node: ast.AST) -> bool:
    if isinstance(node, ast.Expression):
        return _is_supported(node.body)

    if isinstance(node, ast.BoolOp):
        return all(_is_supported(v) for v in node.values)

    if isinstance(node, ast.UnaryOp):
        return isinstance(node.op, ast.Not) and _is_supported(node.operand)

    if isinstance(node, ast.Compare):
        if not all(isinstance(op, _ALLOWED_COMPARATORS) for op in node.ops):
            return False
        return _is_supported(node.left) and all(_is_supported(c) for c in node.comparators)

    if isinstance(node, ast.Attribute):
        return _is_supported(node.value)

    if isinstance(node, (ast.List, ast.Tuple)):
        return all(_is_supported(e) for e in node.elts)

    if isinstance(node, (ast.Name, ast.Constant)):
        return True
    return False
