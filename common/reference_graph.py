"""Static view of the references between synthesized resources.

Nodes are ``<stack name>/<logical id>``. Edges run from a consuming resource
to the resource it references through ``Ref``, ``Fn::GetAtt``, ``Fn::Sub``
placeholders or ``DependsOn``, plus one edge per stack dependency between the
stacks themselves (``<stack name>/*``). Each output is a node
``<stack name>/Outputs/<name>`` pointing at the resources its value reads.
"""
import re
from graphlib import CycleError, TopologicalSorter
from typing import Any, Iterable, Mapping, Optional

from attrs import define, field
from aws_cdk import Stack
from aws_cdk.assertions import Template

STACK_NODE = "*"
OUTPUTS_NODE = "Outputs"

# ${Name} or ${Name.Attribute}; ${!Literal} is escaped text
_SUB_PLACEHOLDER = re.compile(r"\$\{(?!!)([^}.]+)(?:\.[^}]*)?\}")


def _sub_references(inner: Any) -> set[str]:
    if isinstance(inner, str):
        return set(_SUB_PLACEHOLDER.findall(inner))
    if isinstance(inner, list) and inner and isinstance(inner[0], str):
        variables = inner[1] if len(inner) > 1 and isinstance(inner[1], Mapping) else {}
        names = set(_SUB_PLACEHOLDER.findall(inner[0])) - set(variables)
        return names | _collect_references(list(variables.values()))
    return set()


def _collect_references(value: Any) -> set[str]:
    found: set[str] = set()
    if isinstance(value, Mapping):
        for key, inner in value.items():
            if key == "Ref" and isinstance(inner, str):
                found.add(inner)
            elif key == "Fn::GetAtt" and isinstance(inner, list) and inner:
                found.add(inner[0])
            elif key == "Fn::Sub":
                found |= _sub_references(inner)
            else:
                found |= _collect_references(inner)
    elif isinstance(value, list):
        for inner in value:
            found |= _collect_references(inner)
    return found


@define(slots=True)
class ReferenceGraph:
    edges: dict[str, set[str]] = field(factory=dict)

    @classmethod
    def from_templates(
        cls,
        templates: Mapping[str, Mapping[str, Any]],
        stack_dependencies: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> "ReferenceGraph":
        graph = cls()
        for stack_name, template in templates.items():
            resources = template.get("Resources", {})
            for logical_id, resource in resources.items():
                node = f"{stack_name}/{logical_id}"
                graph.edges.setdefault(node, set())
                targets = _collect_references(resource.get("Properties", {}))
                depends_on = resource.get("DependsOn", [])
                if isinstance(depends_on, str):
                    depends_on = [depends_on]
                targets.update(depends_on)
                # Pseudo parameters such as AWS::Region are not resources
                for target in targets:
                    if target in resources:
                        graph.add_edge(node, f"{stack_name}/{target}")

            for output_name, output in template.get("Outputs", {}).items():
                node = f"{stack_name}/{OUTPUTS_NODE}/{output_name}"
                graph.edges.setdefault(node, set())
                for target in _collect_references(output.get("Value")):
                    if target in resources:
                        graph.add_edge(node, f"{stack_name}/{target}")

        for stack_name, dependencies in (stack_dependencies or {}).items():
            for dependency in dependencies:
                graph.add_edge(
                    f"{stack_name}/{STACK_NODE}", f"{dependency}/{STACK_NODE}"
                )
        return graph

    @classmethod
    def from_stacks(cls, stacks: Iterable[Stack]) -> "ReferenceGraph":
        stacks = list(stacks)
        templates = {
            stack.stack_name: Template.from_stack(stack).to_json() for stack in stacks
        }
        dependencies = {
            stack.stack_name: [dependency.stack_name for dependency in stack.dependencies]
            for stack in stacks
        }
        return cls.from_templates(templates, dependencies)

    def add_edge(self, consumer: str, producer: str) -> None:
        self.edges.setdefault(consumer, set()).add(producer)
        self.edges.setdefault(producer, set())

    def references_of(self, node: str) -> set[str]:
        return set(self.edges.get(node, set()))

    def find_cycle(self) -> Optional[list[str]]:
        """Return the nodes of one reference cycle, or None when the graph is acyclic."""
        try:
            self.topological_order()
        except CycleError as error:
            return list(error.args[1])
        return None

    def topological_order(self) -> list[str]:
        """Producers before consumers."""
        return list(TopologicalSorter(self.edges).static_order())
