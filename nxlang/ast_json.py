"""JSON serialization/deserialization for the nx AST.

This module converts between AST dataclasses and plain Python dict/list
structures suitable for JSON encoding. Every node becomes a dict tagged
with its class name under ``"type"``; the conversion round-trips.
"""

from __future__ import annotations

from typing import Any, Dict

from .ast import (
    Program,
    FunctionDecl,
    Block,
    Let,
    Assign,
    ExprStmt,
    Return,
    If,
    While,
    Break,
    Continue,
    Call,
    Binary,
    IntLiteral,
    StringLiteral,
    VarRef,
)


def ast_to_obj(node: Any) -> Any:
    if node is None:
        return None
    if isinstance(node, Program):
        return {"type": "Program", "functions": [ast_to_obj(f) for f in node.functions]}
    if isinstance(node, FunctionDecl):
        return {
            "type": "FunctionDecl",
            "name": node.name,
            "params": list(node.params),
            "body": ast_to_obj(node.body),
        }
    if isinstance(node, Block):
        return {"type": "Block", "statements": [ast_to_obj(s) for s in node.statements]}
    if isinstance(node, Let):
        return {"type": "Let", "name": node.name, "value": ast_to_obj(node.value)}
    if isinstance(node, Assign):
        return {"type": "Assign", "name": node.name, "value": ast_to_obj(node.value)}
    if isinstance(node, ExprStmt):
        return {"type": "ExprStmt", "expr": ast_to_obj(node.expr)}
    if isinstance(node, Return):
        return {"type": "Return", "value": ast_to_obj(node.value)}
    if isinstance(node, If):
        return {
            "type": "If",
            "condition": ast_to_obj(node.condition),
            "then_block": ast_to_obj(node.then_block),
            "else_block": ast_to_obj(node.else_block),
        }
    if isinstance(node, While):
        return {"type": "While", "condition": ast_to_obj(node.condition), "body": ast_to_obj(node.body)}
    if isinstance(node, Break):
        return {"type": "Break"}
    if isinstance(node, Continue):
        return {"type": "Continue"}
    if isinstance(node, Call):
        return {"type": "Call", "name": node.name, "args": [ast_to_obj(a) for a in node.args]}
    if isinstance(node, Binary):
        return {"type": "Binary", "op": node.op, "left": ast_to_obj(node.left), "right": ast_to_obj(node.right)}
    if isinstance(node, IntLiteral):
        return {"type": "IntLiteral", "value": node.value}
    if isinstance(node, StringLiteral):
        return {"type": "StringLiteral", "value": node.value}
    if isinstance(node, VarRef):
        return {"type": "VarRef", "name": node.name}

    raise TypeError(f"Unsupported node for serialization: {type(node).__name__}")


def ast_from_obj(obj: Any) -> Any:
    if obj is None:
        return None
    if not isinstance(obj, dict):
        raise TypeError("Invalid AST object")
    t = obj.get("type")
    if t == "Program":
        return Program(functions=[ast_from_obj(f) for f in obj["functions"]])
    if t == "FunctionDecl":
        return FunctionDecl(name=obj["name"], params=list(obj["params"]), body=ast_from_obj(obj["body"]))
    if t == "Block":
        return Block(statements=[ast_from_obj(s) for s in obj["statements"]])
    if t == "Let":
        return Let(name=obj["name"], value=ast_from_obj(obj["value"]))
    if t == "Assign":
        return Assign(name=obj["name"], value=ast_from_obj(obj["value"]))
    if t == "ExprStmt":
        return ExprStmt(expr=ast_from_obj(obj["expr"]))
    if t == "Return":
        return Return(value=ast_from_obj(obj["value"]))
    if t == "If":
        return If(
            condition=ast_from_obj(obj["condition"]),
            then_block=ast_from_obj(obj["then_block"]),
            else_block=ast_from_obj(obj.get("else_block")),
        )
    if t == "While":
        return While(condition=ast_from_obj(obj["condition"]), body=ast_from_obj(obj["body"]))
    if t == "Break":
        return Break()
    if t == "Continue":
        return Continue()
    if t == "Call":
        return Call(name=obj["name"], args=[ast_from_obj(a) for a in obj["args"]])
    if t == "Binary":
        return Binary(left=ast_from_obj(obj["left"]), op=obj["op"], right=ast_from_obj(obj["right"]))
    if t == "IntLiteral":
        return IntLiteral(value=int(obj["value"]))
    if t == "StringLiteral":
        return StringLiteral(value=obj["value"])
    if t == "VarRef":
        return VarRef(name=obj["name"])

    raise ValueError(f"Unknown AST node type: {t}")


def program_from_obj(obj: Dict[str, Any]) -> Program:
    program = ast_from_obj(obj)
    if not isinstance(program, Program):
        raise ValueError("AST file does not contain a Program")
    return program
