from aws_cdk import Stack, Token
from constructs import Construct

from common.references import CrossUnitReferenceError, ExportedReference, T
from common.stack_context import StackContext


class DeploymentUnit(Stack):
    """Stack that only shares constructs through explicit export/import."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        cross_region_references: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(
            scope,
            construct_id,
            cross_region_references=cross_region_references,
            **kwargs,
        )
        self.cross_region_references_enabled = cross_region_references
        self.context = StackContext(scope=self)

    def export(self, value: T) -> ExportedReference[T]:
        return ExportedReference(
            producer=self,
            value=value,
            cross_region=self.cross_region_references_enabled,
        )

    def import_reference(self, reference: ExportedReference[T]) -> T:
        """Consume a construct exported by another unit and depend on that unit."""
        producer = reference.producer
        if producer is self:
            raise CrossUnitReferenceError(
                f"{self.stack_name} cannot import a reference it exported itself"
            )

        if Token.is_unresolved(producer.region) or Token.is_unresolved(self.region):
            if producer.region != self.region:
                raise CrossUnitReferenceError(
                    f"{producer.stack_name} and {self.stack_name} must be pinned to "
                    "explicit regions to share references"
                )
        elif producer.region != self.region:
            if not (reference.cross_region and self.cross_region_references_enabled):
                raise CrossUnitReferenceError(
                    f"{producer.stack_name} ({producer.region}) -> {self.stack_name} "
                    f"({self.region}) needs cross_region_references on both stacks"
                )

        self.add_stack_dependency(producer)
        return reference.value
