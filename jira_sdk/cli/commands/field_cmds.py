from __future__ import annotations

from jira_sdk.models.entities import FieldMetadata

from ..click_compat import RichCommand, click
from ..context import CLIContext
from ..options import output_options
from ..runner import CommandOutput, run_command


def _field_payload(field: FieldMetadata) -> dict[str, object]:
    schema = field.schema_
    return {
        "id": field.id,
        "name": field.name,
        "type": schema.type if schema is not None else None,
        "clauseNames": field.clause_names,
    }


@click.command(name="fields", cls=RichCommand)
@output_options
@click.pass_obj
def fields_cmd(ctx: CLIContext) -> None:
    """List custom fields (display name and id)."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        client = ctx.get_client()
        fields = sorted(client.metadata.custom_fields(), key=lambda f: f.name.casefold())
        return CommandOutput(data={"fields": [_field_payload(field) for field in fields]})

    run_command(ctx, command="fields", fn=fn)
