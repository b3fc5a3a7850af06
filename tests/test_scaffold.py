import ast
import datetime

import flask
import pytest

from memberdesk import scaffold

NOW = datetime.datetime(2024, 1, 2, 3, 4, 5)


@pytest.fixture
def project(tmp_path):
    (tmp_path / "migrations").mkdir()
    (tmp_path / "handlers").mkdir()
    return tmp_path


def test_migration_file_named_by_timestamp(project):
    path = scaffold.generate_migration("widget", project, NOW)
    assert path == project / "migrations" / "20240102030405_create_widget.py"
    content = path.read_text()
    ast.parse(content)
    assert '"20240102030405_create_widget"' in content
    assert 'DROP TABLE "widget"' in content


def test_migration_needs_existing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        scaffold.generate_migration("widget", tmp_path, NOW)


def test_entity_is_valid_python_class(tmp_path):
    path = scaffold.generate_entity("shop_item", tmp_path)
    assert path == tmp_path / "entities" / "shop_item.py"
    tree = ast.parse(path.read_text())
    classes = [node.name for node in tree.body if isinstance(node, ast.ClassDef)]
    assert classes == ["ShopItem"]


def test_handlers_define_four_functions(project):
    path = scaffold.generate_crud_handlers("widget", project)
    assert path.name == "widget_handlers.py"
    content = path.read_text()
    tree = ast.parse(content)
    functions = {node.name for node in tree.body if isinstance(node, ast.FunctionDef)}
    assert functions == {"list_widgets", "create_widget", "update_widget", "delete_widget"}
    assert '"List of widgets"' in content


def test_handlers_need_existing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        scaffold.generate_crud_handlers("widget", tmp_path)


def test_view_renders_rows(tmp_path):
    path = scaffold.generate_views("widget", tmp_path)
    assert path == tmp_path / "templates" / "widget" / "index.html"
    app = flask.Flask("scaffold_test")
    with app.app_context():
        html = flask.render_template_string(
            path.read_text(), widgets=[{"id": 7, "name": "Gear"}]
        )
    assert "<h1>List of widgets</h1>" in html
    assert "<td>Gear</td>" in html


def test_invalid_name_rejected(tmp_path):
    with pytest.raises(ValueError):
        scaffold.generate_views("bad name", tmp_path)


def test_main_generates_everything(project, capsys):
    assert scaffold.main(["--root", str(project), "generate", "scaffold", "widget"]) == 0
    assert len(list((project / "migrations").glob("*_create_widget.py"))) == 1
    assert (project / "entities" / "widget.py").is_file()
    assert (project / "handlers" / "widget_handlers.py").is_file()
    assert (project / "templates" / "widget" / "index.html").is_file()
    out = capsys.readouterr().out
    assert "Created migration for widget" in out
    assert "Created CRUD handlers for widget" in out


def test_main_rejects_unknown_scaffold(project):
    with pytest.raises(SystemExit):
        scaffold.main(["--root", str(project), "generate", "other", "widget"])


def test_main_without_command_writes_nothing(project):
    assert scaffold.main(["--root", str(project)]) == 0
    assert list((project / "migrations").iterdir()) == []