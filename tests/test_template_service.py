import pytest

from checklist_engine.core.errors import (
    ActivationBlocked,
    GeneratorUnavailable,
    IOTimeout,
    NotAFolder,
    NotFound,
    StaleVersion,
    StructuralDecodeFailure,
)
from checklist_engine.core.field_types import FieldType
from checklist_engine.schemas.templates import FolderCreate, FolderUpdate, Template, TemplateDraft
from checklist_engine.services.template_service import TemplateService, strip_markdown_fences
from tests.helpers import CAPACETE_CSV, make_draft, make_field


def _field_shapes(template: Template):
    return [f.model_dump(exclude={"id"}) for f in template.fields]


# ---- create ----


def test_create_template_starts_inactive_at_version_one(service, repo):
    result = service.create_template(make_draft())

    t = result.template
    assert t.version == 1
    assert t.usage_count == 0
    assert t.is_active is False
    assert result.issues == []
    assert result.can_activate is True
    assert repo.get(t.id) == t


def test_create_invalid_template_is_saved_with_issues(service, repo):
    draft = make_draft(fields=[make_field("", FieldType.SELECT)])
    result = service.create_template(draft)

    assert [i.code for i in result.issues] == ["missing_name", "missing_options"]
    assert result.can_activate is False
    assert repo.get(result.template.id) is not None


def test_create_renumbers_fields(service):
    fields = [
        make_field("B", order_index=5),
        make_field("A", order_index=2),
    ]
    t = service.create_template(make_draft(fields=fields)).template
    assert [(f.name, f.order_index) for f in t.fields] == [("A", 0), ("B", 1)]


def test_create_in_folder(service):
    folder = service.create_folder(FolderCreate(name="Segurança"))
    t = service.create_template(make_draft(parent_folder_id=folder.id)).template

    assert t.parent_folder_id == folder.id
    assert [n.id for n in service.tree.list_children(folder.id)] == [t.id]


def test_create_under_missing_folder_fails(service, repo):
    with pytest.raises(NotFound):
        service.create_template(make_draft(parent_folder_id="missing"))
    assert len(repo) == 0


def test_create_under_template_fails(service):
    parent = service.create_template(make_draft()).template
    with pytest.raises(NotAFolder):
        service.create_template(make_draft(parent_folder_id=parent.id))


# ---- update ----


def test_update_with_changes_bumps_version(service):
    t = service.create_template(make_draft()).template
    fields = t.fields + [make_field("Observações", FieldType.TEXTAREA, order_index=3)]

    result = service.update_template(t.id, make_draft(fields=fields))

    assert result.template.version == 2
    assert len(result.template.fields) == 4


def test_update_without_changes_keeps_version(service):
    t = service.create_template(make_draft()).template

    result = service.update_template(t.id, make_draft(fields=t.fields))

    assert result.template.version == 1
    assert result.template.updated_at == t.updated_at


def test_update_with_stale_version_fails(service):
    t = service.create_template(make_draft()).template
    service.update_template(t.id, make_draft(name="Renomeado"), expected_version=1)

    with pytest.raises(StaleVersion) as exc:
        service.update_template(t.id, make_draft(name="Outro"), expected_version=1)
    assert exc.value.context["expected"] == 2


def test_update_introducing_errors_deactivates(service):
    t = service.create_template(make_draft()).template
    service.activate_template(t.id)

    result = service.update_template(t.id, make_draft(fields=[make_field("", FieldType.TEXT)]))

    assert result.template.is_active is False
    assert result.can_activate is False


def test_update_missing_template(service):
    with pytest.raises(NotFound):
        service.update_template("missing", make_draft())


# ---- duplicate ----


def test_duplicate_twice_gives_distinct_copies(service):
    source = service.create_template(make_draft()).template
    service.activate_template(source.id)
    for _ in range(3):
        service.record_usage(source.id)
    service.update_template(source.id, make_draft(name="Inspeção v2"))

    first = service.duplicate_template(source.id)
    second = service.duplicate_template(source.id)

    assert len({source.id, first.id, second.id}) == 3
    assert first.version == second.version == 1
    assert first.usage_count == second.usage_count == 0
    assert first.is_active is False
    assert _field_shapes(first) == _field_shapes(second) == _field_shapes(service.get_template(source.id))
    assert first.name == "Inspeção v2 (cópia)"


def test_duplicate_gets_fresh_field_ids(service):
    source = service.create_template(make_draft()).template
    copy = service.duplicate_template(source.id)

    assert not {f.id for f in copy.fields} & {f.id for f in source.fields}


def test_duplicate_goes_to_root_unless_kept(service):
    folder = service.create_folder(FolderCreate(name="Qualidade"))
    source = service.create_template(make_draft(parent_folder_id=folder.id)).template

    assert service.duplicate_template(source.id).parent_folder_id is None
    assert service.duplicate_template(source.id, keep_parent=True).parent_folder_id == folder.id


def test_duplicate_leaves_source_untouched(service):
    source = service.create_template(make_draft()).template
    copy = service.duplicate_template(source.id, name_suffix=" - B")
    copy.fields[0].name = "Mudou"

    assert service.get_template(source.id).fields[0].name == "Nome do Inspetor"
    assert copy.name == "Inspeção Diária - B"


def test_duplicate_of_max_length_name_stays_within_limit(service):
    """Source name is trimmed so the copy still fits and keeps its suffix"""
    source = service.create_template(make_draft(name="N" * 200)).template

    copy = service.duplicate_template(source.id)
    copy_of_copy = service.duplicate_template(copy.id)

    for dup in (copy, copy_of_copy):
        assert len(dup.name) == 200
        assert dup.name.endswith(" (cópia)")
        # still accepted when sent back as an edit
        TemplateDraft(name=dup.name, fields=[])


# ---- activation / usage ----


def test_activation_blocked_by_errors(service):
    t = service.create_template(make_draft(fields=[make_field("", FieldType.RADIO)])).template

    with pytest.raises(ActivationBlocked) as exc:
        service.activate_template(t.id)

    assert [i.code for i in exc.value.issues] == ["missing_name", "missing_options"]
    assert exc.value.to_dict()["issues"][0]["code"] == "missing_name"
    assert service.get_template(t.id).is_active is False


def test_activation_allowed_with_warnings(service):
    fields = [make_field("x" * 250, FieldType.TEXT)]
    t = service.create_template(make_draft(fields=fields)).template

    assert service.activate_template(t.id).is_active is True


def test_activate_and_deactivate(service):
    t = service.create_template(make_draft()).template

    assert service.activate_template(t.id).is_active is True
    assert service.deactivate_template(t.id).is_active is False
    assert service.get_template(t.id).version == 1


def test_record_usage_requires_active_template(service):
    t = service.create_template(make_draft()).template

    with pytest.raises(ActivationBlocked):
        service.record_usage(t.id)

    service.activate_template(t.id)
    service.record_usage(t.id)
    assert service.record_usage(t.id).usage_count == 2


def test_move_template(service):
    folder = service.create_folder(FolderCreate(name="Manutenção"))
    t = service.create_template(make_draft()).template

    assert service.move_template(t.id, folder.id).parent_folder_id == folder.id


def test_move_folder_id_through_template_api_fails(service):
    folder = service.create_folder(FolderCreate(name="Manutenção"))
    with pytest.raises(NotFound):
        service.move_template(folder.id, None)


def test_delete_template(service, repo):
    t = service.create_template(make_draft()).template
    service.delete_template(t.id)
    assert repo.get(t.id) is None


# ---- CSV ----


def test_import_from_csv(service):
    result = service.import_from_csv("EPI", "seguranca", CAPACETE_CSV)

    t = result.template
    assert t.name == "EPI"
    assert t.category == "seguranca"
    assert [f.order_index for f in t.fields] == [0, 1]
    assert t.fields[1].options == ["Excelente", "Bom", "Regular", "Ruim", "Crítico"]
    assert result.decode_issues == []
    assert result.can_activate is True
    assert t.is_active is False


def test_import_reports_skipped_rows(service):
    text = "campo,tipo\nCapacete,checkbox\nTemperatura,slider\n"
    result = service.import_from_csv("EPI", "geral", text)

    assert len(result.template.fields) == 1
    assert [d.code for d in result.decode_issues] == ["unknown_type"]


def test_import_missing_columns_fails_without_saving(service, repo):
    with pytest.raises(StructuralDecodeFailure) as exc:
        service.import_from_csv("EPI", "geral", "nome,obrigatorio\nCapacete,sim\n")

    assert exc.value.issues[0].structural is True
    assert len(repo) == 0


def test_import_quoted_fields(service):
    text = 'campo,tipo,obrigatorio,opcoes,descricao\nLocal,text,sim,,"Galpão 1, setor B"\n'
    result = service.import_from_csv("Local", "geral", text, quoted_fields=True)
    assert result.template.fields[0].description == "Galpão 1, setor B"


def test_export_then_import_reproduces_fields(service):
    source = service.import_from_csv("EPI", "geral", CAPACETE_CSV).template

    exported = service.export_to_csv(source.id)
    again = service.import_from_csv("EPI 2", "geral", exported).template

    def shape(t):
        return [(f.name, f.type, f.required, f.options, f.description) for f in t.fields]

    assert shape(again) == shape(source)


# ---- generator ----


def test_generate_without_generator_fails(service):
    with pytest.raises(GeneratorUnavailable):
        service.draft_csv_from_prompt("checklist de empilhadeira")


def test_generate_strips_markdown_fences(repo):
    prompts = []

    def fake_generator(prompt: str) -> str:
        prompts.append(prompt)
        return "```csv\n" + CAPACETE_CSV + "```"

    service = TemplateService(repo, generator=fake_generator)
    text = service.draft_csv_from_prompt("checklist de EPI")

    assert text.startswith("campo,tipo,obrigatorio,opcoes,descricao")
    assert "```" not in text
    assert "checklist de EPI" in prompts[0]
    assert "select, multiselect, radio" in prompts[0]
    assert len(repo) == 0


def test_generator_timeout_maps_to_io_timeout(repo):
    def slow_generator(prompt: str) -> str:
        raise TimeoutError("too slow")

    service = TemplateService(repo, generator=slow_generator)
    with pytest.raises(IOTimeout):
        service.draft_csv_from_prompt("checklist")


def test_strip_markdown_fences():
    assert strip_markdown_fences("```\na,b\n```") == "a,b"
    assert strip_markdown_fences("a,b") == "a,b"
    assert strip_markdown_fences("") == ""


# ---- folders ----


def test_folder_crud_through_service(service, repo):
    folder = service.create_folder(FolderCreate(name="Qualidade", color="#2563EB"))
    updated = service.update_folder(folder.id, FolderUpdate(name="Qualidade Total"))

    assert updated.name == "Qualidade Total"
    assert updated.color == "#2563EB"

    service.delete_folder(folder.id)
    assert repo.get(folder.id) is None


# ---- template list export ----


def test_export_templates_csv_lists_templates_only(service):
    folder = service.create_folder(FolderCreate(name="Segurança"))
    service.create_template(make_draft(name="EPI", category="seguranca", parent_folder_id=folder.id))
    service.create_template(make_draft(name="Limpeza", category="qualidade"))

    lines = service.export_templates_csv().splitlines()

    assert lines[0] == "nome,categoria,descricao,publico,campos,criado_em"
    assert len(lines) == 3
    assert not any("Segurança" in line for line in lines)


def test_export_templates_csv_applies_filters(service):
    service.create_template(make_draft(name="EPI", category="seguranca"))
    service.create_template(make_draft(name="Limpeza", category="qualidade"))

    lines = service.export_templates_csv(category="qualidade").splitlines()

    assert len(lines) == 2
    assert lines[1].startswith('"Limpeza","qualidade"')
