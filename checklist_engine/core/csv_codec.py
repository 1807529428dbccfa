"""
CSV codec for checklist fields.

Format (header row mandatory):

    campo,tipo,obrigatorio,opcoes,descricao
    Nome do Funcionário,text,sim,,Nome completo do funcionário responsável
    EPIs Adequados,select,sim,"Conforme|Não Conforme|Parcial",Verificação do uso correto de EPIs

Decoding splits rows on bare commas unless `quoted_fields=True`, in which
case the standard csv tokenizer is used and quoted values may contain commas.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from checklist_engine.core.field_types import parse_field_type
from checklist_engine.core.field_validation import normalize_options
from checklist_engine.schemas.templates import FieldDefinition, Template
from checklist_engine.schemas.validation import DecodeIssue, Severity

COL_NAME = "campo"
COL_TYPE = "tipo"
COL_REQUIRED = "obrigatorio"
COL_OPTIONS = "opcoes"
COL_DESCRIPTION = "descricao"

HEADER = (COL_NAME, COL_TYPE, COL_REQUIRED, COL_OPTIONS, COL_DESCRIPTION)
MANDATORY_COLUMNS = (COL_NAME, COL_TYPE)

OPTION_SEPARATOR = "|"
REQUIRED_TRUE = "sim"
REQUIRED_YES_LABEL = "Sim"
REQUIRED_NO_LABEL = "Não"

# template list export
LIST_HEADER = ("nome", "categoria", "descricao", "publico", "campos", "criado_em")
LIST_DATE_FORMAT = "%d/%m/%Y"

SAMPLE_CSV = """campo,tipo,obrigatorio,opcoes,descricao
Nome do Funcionário,text,sim,,Nome completo do funcionário responsável
Data da Inspeção,date,sim,,Data de realização da inspeção
Hora de Início,time,sim,,Horário de início da inspeção
EPIs Adequados,select,sim,"Conforme|Não Conforme|Parcial",Verificação do uso correto de EPIs
Capacete de Segurança,checkbox,sim,,Uso obrigatório em áreas de risco
Óculos de Proteção,checkbox,sim,,Proteção ocular adequada
Luvas de Proteção,checkbox,sim,,Proteção das mãos
Calçado de Segurança,checkbox,sim,,Botas com biqueira de aço
Estado dos Equipamentos,select,sim,"Excelente|Bom|Regular|Ruim|Crítico",Avaliação geral dos equipamentos
Sinalização de Segurança,rating,sim,,Avaliação da sinalização (1-5)
Organização do Local,rating,sim,,Limpeza e organização (1-5)
Riscos Identificados,multiselect,não,"Queda|Elétrico|Químico|Ergonômico|Incêndio",Riscos observados
Fotos da Inspeção,file,não,,Upload de evidências fotográficas
Observações Gerais,textarea,não,,Comentários e observações adicionais
Ações Necessárias,textarea,sim,,Descrição das ações corretivas necessárias
Responsável pela Ação,text,não,,Nome do responsável pelas correções
Prazo para Correção,date,não,,Data limite para implementação
"""


@dataclass(frozen=True)
class DecodeResult:
    fields: tuple[FieldDefinition, ...] = ()
    issues: tuple[DecodeIssue, ...] = ()

    @property
    def failed(self) -> bool:
        """True when the header was unusable and nothing was imported."""
        return any(i.structural for i in self.issues)


# =============================================================================
# Decode
# =============================================================================


def _unquote(value: str) -> str:
    v = value.strip()
    if len(v) >= 2 and v[0] == '"' and v[-1] == '"':
        v = v[1:-1].replace('""', '"')
    return v.strip()


def _rows(text: str, quoted_fields: bool) -> list[tuple[int, list[str]]]:
    if quoted_fields:
        reader = csv.reader(io.StringIO(text))
        return [(reader.line_num, [v.strip() for v in row]) for row in reader]
    return [(i + 1, [_unquote(v) for v in line.split(",")]) for i, line in enumerate(text.split("\n"))]


def decode_fields(text: str, *, quoted_fields: bool = False) -> DecodeResult:
    """
    Parse CSV text into field definitions.

    - Missing `campo` or `tipo` column: one structural issue, no fields.
    - Rows without a name or type are dropped silently (blank lines).
    - Rows with a type outside the field type set are dropped and reported.
    - Kept rows get order_index 0..n-1 in file order.
    """
    cleaned = (text or "").lstrip("\ufeff").strip()
    rows = _rows(cleaned, quoted_fields) if cleaned else []

    header = [h.replace('"', "").strip() for h in rows[0][1]] if rows else []
    missing = [c for c in MANDATORY_COLUMNS if c not in header]
    if missing:
        return DecodeResult(
            issues=(
                DecodeIssue(
                    severity=Severity.ERROR,
                    row=1,
                    code="missing_columns",
                    message=f"CSV must contain at least the '{COL_NAME}' and '{COL_TYPE}' columns.",
                    structural=True,
                ),
            )
        )

    fields: list[FieldDefinition] = []
    issues: list[DecodeIssue] = []

    for line_no, values in rows[1:]:
        record: dict[str, str] = {}
        for i, column in enumerate(header):
            record[column] = values[i] if i < len(values) else ""

        name = record.get(COL_NAME) or ""
        raw_type = record.get(COL_TYPE) or ""
        if not name.strip() or not raw_type.strip():
            continue

        ftype = parse_field_type(raw_type)
        if ftype is None:
            issues.append(
                DecodeIssue(
                    severity=Severity.ERROR,
                    row=line_no,
                    code="unknown_type",
                    message=f"Row {line_no}: unknown field type '{raw_type}', row skipped.",
                )
            )
            continue

        raw_options = record.get(COL_OPTIONS) or ""
        options = [o.strip() for o in raw_options.split(OPTION_SEPARATOR)] if raw_options else []

        fields.append(
            FieldDefinition(
                name=name,
                type=ftype,
                required=(record.get(COL_REQUIRED) or "").lower() == REQUIRED_TRUE,
                options=options,
                description=record.get(COL_DESCRIPTION),
                order_index=len(fields),
            )
        )

    return DecodeResult(fields=tuple(fields), issues=tuple(issues))


# =============================================================================
# Encode
# =============================================================================


def _quote(value: str, force: bool = False) -> str:
    if force or any(c in value for c in ',"\r\n'):
        return '"' + value.replace('"', '""') + '"'
    return value


def _encode_row(f: FieldDefinition) -> str:
    options = OPTION_SEPARATOR.join(normalize_options(f.options))
    return ",".join(
        [
            _quote(f.name),
            f.type.value,
            REQUIRED_YES_LABEL if f.required else REQUIRED_NO_LABEL,
            _quote(options, force=bool(options)),
            _quote(f.description or ""),
        ]
    )


def encode_fields(fields: Iterable[FieldDefinition]) -> str:
    """Render fields as CSV text in order_index order, header first."""
    ordered: Sequence[FieldDefinition] = sorted(fields, key=lambda f: f.order_index)
    lines = [",".join(HEADER)]
    lines.extend(_encode_row(f) for f in ordered)
    return "\n".join(lines) + "\n"


def encode_template_list(nodes: Iterable) -> str:
    """
    One row per template, every value quoted; folders are skipped:

        nome,categoria,descricao,publico,campos,criado_em
        "Inspeção de EPI","seguranca","","Sim","17","19/10/2026"
    """
    lines = [",".join(LIST_HEADER)]
    for t in nodes:
        if not isinstance(t, Template):
            continue
        values = [
            t.name,
            t.category or "",
            t.description or "",
            REQUIRED_YES_LABEL if t.is_public else REQUIRED_NO_LABEL,
            str(len(t.fields)),
            t.created_at.strftime(LIST_DATE_FORMAT),
        ]
        lines.append(",".join(_quote(v, force=True) for v in values))
    return "\n".join(lines) + "\n"
