from typing import Generic, TypeVar

from attrs import define, field
from aws_cdk import Stack
from constructs import IConstruct

T = TypeVar("T", bound=IConstruct)


class CrossUnitReferenceError(ValueError):
    """A value was consumed from another deployment unit in a way CloudFormation cannot resolve."""


@define(slots=True, frozen=True)
class ExportedReference(Generic[T]):
    """A construct handed from the stack that declares it to a consuming stack.

    Created by ``DeploymentUnit.export`` and consumed by
    ``DeploymentUnit.import_reference``.
    """

    producer: Stack
    value: T
    cross_region: bool = field(default=False)

    def __attrs_post_init__(self) -> None:
        owner = Stack.of(self.value)
        if owner is not self.producer:
            raise CrossUnitReferenceError(
                f"{self.value.node.path} is declared in {owner.stack_name}, "
                f"not in {self.producer.stack_name}"
            )
