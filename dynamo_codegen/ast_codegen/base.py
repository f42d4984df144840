import logging
import ast
from typing import Any, List, Optional, Sequence, Tuple

from inflect import engine as inflect_engine

logger = logging.getLogger(__name__)

_INFLECT_ENGINE_ = inflect_engine()

GENERATED_HEADER = "Generated by dynamo-codegen. Do not edit by hand."

# (parameter name, annotation, default); default of None means "no default"
Parameter = Tuple[str, Optional[ast.expr], Optional[ast.expr]]


def pluralize(word: str) -> str:

    if not isinstance(word, str) or not word:
        return "" # Return empty for non-string or empty input

    try:
        plural = _INFLECT_ENGINE_.plural(word)
        if plural:
            return plural
        return word + "s"
    except Exception as e:
        logger.error(f"Inflect pluralization failed for '{word}': {e}. Falling back to adding 's'.")
        return word + "s"


def add_location(node):
    """Add location info to AST nodes"""
    node.lineno = 1
    node.col_offset = 0
    return node


def create_docstring(content: str) -> ast.Expr:
    """Creates an AST node for a docstring."""
    docstring_node = ast.Expr(value=ast.Constant(value=content))
    docstring_node.lineno = 1
    docstring_node.col_offset = 0
    return docstring_node


def create_module_docstring(summary: str) -> ast.Expr:
    """Creates the docstring every generated module starts with."""
    return create_docstring(f"\n{summary}\n\n{GENERATED_HEADER}\n")


def create_import(module: str, names: Optional[List[str]] = None) -> ast.Import | ast.ImportFrom:
    """Creates an AST node for an import statement (relative modules keep their leading dots)."""
    if names:
        node = ast.ImportFrom(
            module=module,
            names=[ast.alias(name=name, lineno=1, col_offset=0) for name in names],
            level=0
        )
    else:
        node = ast.Import(names=[ast.alias(name=module, lineno=1, col_offset=0)])

    node.lineno = 1
    node.col_offset = 0
    return node


def create_module(body: List[ast.stmt]) -> ast.Module:
    """Creates an AST Module node with location info fixed up."""
    return ast.fix_missing_locations(add_location(ast.Module(body=body, type_ignores=[])))


# ---- Expressions ----

def create_name(name: str, store: bool = False) -> ast.Name:
    """Creates an AST Name node."""
    return add_location(ast.Name(id=name, ctx=ast.Store() if store else ast.Load()))


def create_attribute(dotted: str, store: bool = False) -> ast.expr:
    """Creates a chain of Attribute nodes from a dotted path such as ``self._name``."""
    parts = dotted.split(".")
    node: ast.expr = create_name(parts[0])
    for index, part in enumerate(parts[1:], start=2):
        is_last = index == len(parts)
        node = add_location(ast.Attribute(
            value=node,
            attr=part,
            ctx=ast.Store() if (store and is_last) else ast.Load()
        ))
    return node


def create_call(func_name: str, args: Optional[List[ast.expr]] = None, keywords: Optional[List[ast.keyword]] = None) -> ast.Call:
    """Creates an AST node for a function call."""
    node = ast.Call(
        func=ast.Name(id=func_name, ctx=ast.Load(), lineno=1, col_offset=0),
        args=args or [],
        keywords=keywords or []
    )
    node.lineno = 1
    node.col_offset = 0
    return node


def create_attribute_call(obj_name: str, attr_name: str, args: Optional[List[ast.expr]] = None, keywords: Optional[List[ast.keyword]] = None) -> ast.Call:
    """Creates an AST node for a method call on an object (``obj_name`` may be dotted)."""
    attr = ast.Attribute(
        value=create_attribute(obj_name),
        attr=attr_name,
        ctx=ast.Load()
    )
    attr.lineno = 1
    attr.col_offset = 0

    node = ast.Call(
        func=attr,
        args=args or [],
        keywords=keywords or []
    )
    node.lineno = 1
    node.col_offset = 0
    return node


def create_method_call(value: ast.expr, attr_name: str, args: Optional[List[ast.expr]] = None) -> ast.Call:
    """Creates a method call on an arbitrary expression."""
    return add_location(ast.Call(
        func=add_location(ast.Attribute(value=value, attr=attr_name, ctx=ast.Load())),
        args=args or [],
        keywords=[]
    ))


def create_subscript(value: ast.expr, index: ast.expr, store: bool = False) -> ast.Subscript:
    """Creates ``value[index]``."""
    return add_location(ast.Subscript(
        value=value,
        slice=index,
        ctx=ast.Store() if store else ast.Load()
    ))


def create_type_annotation(name: str, *params: ast.expr) -> ast.expr:
    """Creates a type annotation such as ``Optional[str]`` or ``Dict[str, Any]``."""
    base = create_attribute(name)
    if not params:
        return base
    if len(params) == 1:
        return create_subscript(base, params[0])
    return create_subscript(base, add_location(ast.Tuple(elts=list(params), ctx=ast.Load())))


def create_compare(left: ast.expr, op: ast.cmpop, right: ast.expr) -> ast.Compare:
    """Creates a single binary comparison."""
    return add_location(ast.Compare(left=left, ops=[op], comparators=[right]))


def create_is_none(value: ast.expr) -> ast.Compare:
    return create_compare(value, ast.Is(), create_none_constant())


def create_is_not_none(value: ast.expr) -> ast.Compare:
    return create_compare(value, ast.IsNot(), create_none_constant())


def create_not(value: ast.expr) -> ast.UnaryOp:
    return add_location(ast.UnaryOp(op=ast.Not(), operand=value))


def create_conditional(test: ast.expr, body: ast.expr, orelse: ast.expr) -> ast.IfExp:
    """Creates ``body if test else orelse``."""
    return add_location(ast.IfExp(test=test, body=body, orelse=orelse))


def create_tuple(elements: List[ast.expr]) -> ast.Tuple:
    return add_location(ast.Tuple(elts=elements, ctx=ast.Load()))


def create_dict(keys: List[ast.expr], values: List[ast.expr]) -> ast.Dict:
    return add_location(ast.Dict(keys=keys, values=values))


def create_comprehension(kind: str, element: ast.expr, target: str, iterable: ast.expr) -> ast.expr:
    """Creates a list, set or generator comprehension ``[element for target in iterable]``."""
    generator = ast.comprehension(
        target=create_name(target, store=True),
        iter=iterable,
        ifs=[],
        is_async=0
    )
    node_classes = {"list": ast.ListComp, "set": ast.SetComp, "generator": ast.GeneratorExp}
    return add_location(node_classes[kind](elt=element, generators=[generator]))


def create_fstring(parts: Sequence[Any]) -> ast.JoinedStr:
    """
    Creates an f-string from literal text and ``(expression, conversion)`` pairs.

    Conversion is a single character such as ``"r"``, or None.
    """
    values: List[ast.expr] = []
    for part in parts:
        if isinstance(part, str):
            values.append(create_string_constant(part))
        else:
            expression, conversion = part
            values.append(add_location(ast.FormattedValue(
                value=expression,
                conversion=ord(conversion) if conversion else -1,
                format_spec=None
            )))
    return add_location(ast.JoinedStr(values=values))


def create_literal(value: Any) -> ast.expr:
    """Creates an AST node for a JSON-style literal value (nested lists and dicts included)."""
    if isinstance(value, dict):
        return create_dict(
            keys=[create_literal(key) for key in value],
            values=[create_literal(item) for item in value.values()]
        )
    if isinstance(value, (list, tuple)):
        return add_location(ast.List(elts=[create_literal(item) for item in value], ctx=ast.Load()))
    return add_location(ast.Constant(value=value))


def create_string_constant(value: str, escape_newlines: bool = False) -> ast.Constant:
    """Creates an AST Constant node for a string."""
    if escape_newlines:
        value = value.replace("\n", "\\n")
    node = ast.Constant(value=value)
    node.lineno = 1
    node.col_offset = 0
    return node



def create_none_constant() -> ast.Constant:
    """Creates an AST Constant node for None."""
    node = ast.Constant(value=None)
    node.lineno = 1
    node.col_offset = 0
    return node


def create_keyword(arg: str, value: ast.expr) -> ast.keyword:
    """Creates an AST keyword argument."""
    node = ast.keyword(arg=arg, value=value)
    node.lineno = 1
    node.col_offset = 0
    return node


# ---- Statements ----

def create_assign(target: str, value: ast.expr) -> ast.Assign:
    """Creates an AST node for an assignment (``target`` may be dotted or subscripted via create_subscript)."""
    target_node = create_attribute(target, store=True) if "." in target else create_name(target, store=True)
    node = ast.Assign(
        targets=[target_node],
        value=value
    )
    node.lineno = 1
    node.col_offset = 0
    return node


def create_subscript_assign(container: ast.expr, key: ast.expr, value: ast.expr) -> ast.Assign:
    """Creates ``container[key] = value``."""
    return add_location(ast.Assign(
        targets=[create_subscript(container, key, store=True)],
        value=value
    ))


def create_annotated_assign(target: str, annotation: ast.expr, value: Optional[ast.expr] = None) -> ast.AnnAssign:
    """Creates ``target: annotation = value``."""
    return add_location(ast.AnnAssign(
        target=create_name(target, store=True),
        annotation=annotation,
        value=value,
        simple=1
    ))


def create_expression_statement(value: ast.expr) -> ast.Expr:
    return add_location(ast.Expr(value=value))


def create_return(value: Optional[ast.expr] = None) -> ast.Return:
    return add_location(ast.Return(value=value))


def create_raise(exception: ast.expr) -> ast.Raise:
    return add_location(ast.Raise(exc=exception, cause=None))


def create_if(test: ast.expr, body: List[ast.stmt], orelse: Optional[List[ast.stmt]] = None) -> ast.If:
    return add_location(ast.If(test=test, body=body, orelse=orelse or []))


def create_pass() -> ast.Pass:
    return add_location(ast.Pass())


def create_arguments(params: Sequence[Parameter], first: Optional[str] = "self") -> ast.arguments:
    """
    Creates the argument list of a function.

    Args:
        params: (name, annotation, default) triples in declaration order
        first: Implicit first parameter (``self``/``cls``) or None for plain functions
    """
    args = []
    if first:
        args.append(add_location(ast.arg(arg=first, annotation=None)))
    defaults = []
    for name, annotation, default in params:
        args.append(add_location(ast.arg(arg=name, annotation=annotation)))
        if default is not None:
            defaults.append(default)
        elif defaults:
            raise ValueError(f"Parameter '{name}' without a default follows a parameter with one")
    return add_location(ast.arguments(
        posonlyargs=[],
        args=args,
        vararg=None,
        kwonlyargs=[],
        kw_defaults=[],
        kwarg=None,
        defaults=defaults,
    ))


def create_function_def(
    name: str,
    params: Sequence[Parameter],
    body: List[ast.stmt],
    returns: Optional[ast.expr] = None,
    decorators: Optional[List[str]] = None,
    first: Optional[str] = "self",
    docstring: Optional[str] = None,
    kwargs_name: Optional[str] = None,
    kwargs_annotation: Optional[ast.expr] = None,
) -> ast.FunctionDef:
    """Creates an AST node for a function or method definition."""
    arguments = create_arguments(params, first=first)
    if kwargs_name:
        arguments.kwarg = add_location(ast.arg(arg=kwargs_name, annotation=kwargs_annotation))
    full_body = ([create_docstring(docstring)] if docstring else []) + (body or [create_pass()])
    return add_location(ast.FunctionDef(
        name=name,
        args=arguments,
        body=full_body,
        decorator_list=[create_attribute(decorator) for decorator in decorators or []],
        returns=returns,
        type_params=[],
    ))


def create_class_def(name: str, bases: List[str], body: List[ast.stmt], decorator_list: Optional[List[ast.expr]] = None) -> ast.ClassDef:
    """Creates an AST node for a class definition."""
    node = ast.ClassDef(
        name=name,
        bases=[create_attribute(base) for base in bases],
        keywords=[],
        body=body or [create_pass()],
        decorator_list=decorator_list or [],
        type_params=[],
    )
    node.lineno = 1
    node.col_offset = 0
    return node
