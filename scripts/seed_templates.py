# seed_templates.py
from checklist_engine.core.csv_codec import SAMPLE_CSV
from checklist_engine.core.logging import setup_logging
from checklist_engine.db.repository import NodeFilter, SqlAlchemyTemplateRepository
from checklist_engine.db.session import session_scope
from checklist_engine.schemas.templates import Folder, FolderCreate, Template
from checklist_engine.services.template_service import TemplateService

DEFAULT_FOLDERS = [
    # name, icon, color
    ("Segurança do Trabalho", "shield", "#DC2626"),
    ("Qualidade", "badge-check", "#2563EB"),
    ("Manutenção", "wrench", "#D97706"),
]

DEMO_TEMPLATE_NAME = "Inspeção de Segurança - Modelo"


# ---------- helpers ----------

def get_or_create_root_folder(service: TemplateService, name: str, icon: str, color: str) -> Folder:
    for node in service.tree.list_children(None):
        if isinstance(node, Folder) and node.name == name:
            return node
    return service.create_folder(FolderCreate(name=name, icon=icon, color=color))


def get_or_import_demo_template(service: TemplateService, folder: Folder) -> Template:
    existing = service.repo.list(NodeFilter(kind="template", parent_folder_id=folder.id))
    for t in existing:
        if t.name == DEMO_TEMPLATE_NAME:
            return t

    result = service.import_from_csv(
        DEMO_TEMPLATE_NAME,
        "seguranca",
        SAMPLE_CSV,
        description="Checklist de exemplo importado do CSV modelo",
        parent_folder_id=folder.id,
    )
    return service.activate_template(result.template.id)


def main():
    setup_logging("INFO")
    with session_scope() as db:
        service = TemplateService(SqlAlchemyTemplateRepository(db))

        folders = [get_or_create_root_folder(service, *spec) for spec in DEFAULT_FOLDERS]
        template = get_or_import_demo_template(service, folders[0])

        print("\n=== TEMPLATE SEED COMPLETE ===")
        print("Folders:")
        for f in folders:
            print(f"  {f.name}: {f.id}")

        print("\nTemplate:")
        print(f"  template_id: {template.id} (name={template.name} v{template.version})")
        print(f"  fields: {len(template.fields)}, active={template.is_active}")

        print("\nNext API steps:")
        print(f"  GET  /templates/{template.id}/export-csv")
        print(f"  POST /templates/{template.id}/duplicate")
        print("  GET  /folders/tree")


if __name__ == "__main__":
    main()
