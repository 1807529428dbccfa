from checklist_engine.core.field_types import FieldType
from checklist_engine.schemas.templates import FieldDefinition, TemplateDraft

CAPACETE_CSV = (
    "campo,tipo,obrigatorio,opcoes,descricao\n"
    "Capacete de Segurança,checkbox,sim,,Uso obrigatório em áreas de risco\n"
    'Estado dos Equipamentos,select,sim,"Excelente|Bom|Regular|Ruim|Crítico",Avaliação\n'
)


def make_field(
    name: str = "Campo",
    field_type: FieldType | str = FieldType.TEXT,
    *,
    required: bool = False,
    options: list[str] | str | None = None,
    description: str | None = None,
    order_index: int = 0,
    **extra,
) -> FieldDefinition:
    return FieldDefinition(
        name=name,
        type=FieldType(field_type),
        required=required,
        options=options if options is not None else [],
        description=description,
        order_index=order_index,
        **extra,
    )


def valid_fields() -> list[FieldDefinition]:
    return [
        make_field("Nome do Inspetor", FieldType.TEXT, required=True, order_index=0),
        make_field("EPIs Adequados", FieldType.SELECT, options=["Conforme", "Não Conforme"], order_index=1),
        make_field("Organização do Local", FieldType.RATING, order_index=2),
    ]


def make_draft(name: str = "Inspeção Diária", fields=None, **kw) -> TemplateDraft:
    return TemplateDraft(name=name, fields=valid_fields() if fields is None else fields, **kw)


def field_payload(name="Campo", field_type="text", **kw) -> dict:
    """JSON body shape for one field, as a client would send it."""
    return {"name": name, "type": field_type, **kw}
