"""Tests for the richmenu command-line tool."""
import json

import pytest

from richmenu_manager.cli import build_parser, main
from tests.conftest import TEST_TOKEN, USER_ID, make_client, refuse_connection


@pytest.fixture
def run_cli(fake_line):
    """Run the CLI against the in-memory LINE API and return the exit code."""
    def run(*argv, **settings_overrides):
        return main(list(argv), client=make_client(fake_line, **settings_overrides))
    return run


@pytest.fixture
def menu_file(tmp_path, sample_menu):
    path = tmp_path / "menu.json"
    path.write_text(json.dumps(sample_menu), encoding="utf-8")
    return str(path)


def add_menu(fake_line, sample_menu, rich_menu_id="richmenu-0001"):
    fake_line.menus[rich_menu_id] = dict(sample_menu, richMenuId=rich_menu_id)
    return rich_menu_id


class TestParser:
    """Argument parsing."""

    def test_user_id_is_checked(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["user", "get", "not-a-user"])

        assert "invalid LINE user ID" in capsys.readouterr().err

    @pytest.mark.parametrize("user_id", [
        "U" + "z" * 32,
        "U" + "0123456789ABCDEF" * 2,
        "u" + "0" * 32,
        USER_ID + "0",
    ])
    def test_user_id_must_be_lowercase_hex(self, user_id):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["user", "get", user_id])

    def test_valid_user_id_is_accepted(self):
        args = build_parser().parse_args(["user", "link", USER_ID, "richmenu-0001"])

        assert args.user_id == USER_ID

    def test_menu_source_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["create"])

    def test_template_and_file_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["create", "--template", "six-grid", "--file", "menu.json"])


class TestTokenStatus:
    """token-status command."""

    def test_token_set(self, run_cli, capsys):
        assert run_cli("token-status") == 0
        assert TEST_TOKEN[:20] in capsys.readouterr().out

    def test_token_missing(self, run_cli, capsys):
        assert run_cli("token-status", line_channel_access_token="") == 1
        assert "not set" in capsys.readouterr().out

    def test_token_option(self, run_cli, fake_line, capsys):
        fake_line.token = "token-from-command-line"

        assert run_cli("--token", "token-from-command-line", "list", line_channel_access_token="") == 0
        assert "No rich menus" in capsys.readouterr().out


class TestMenus:
    """Menu commands."""

    def test_list_empty(self, run_cli, capsys):
        assert run_cli("list") == 0
        assert "📋 No rich menus." in capsys.readouterr().out

    def test_list(self, run_cli, fake_line, sample_menu, capsys):
        add_menu(fake_line, sample_menu)

        assert run_cli("list") == 0

        out = capsys.readouterr().out
        assert "📋 1 rich menus:" in out
        assert "ID: richmenu-0001" in out
        assert "Size: 2500 x 1686" in out

    def test_get(self, run_cli, fake_line, sample_menu, capsys):
        add_menu(fake_line, sample_menu)

        assert run_cli("get", "richmenu-0001") == 0

        assert "postback → action=buy&itemid=123" in capsys.readouterr().out

    def test_get_json(self, run_cli, fake_line, sample_menu, capsys):
        add_menu(fake_line, sample_menu)

        assert run_cli("get", "richmenu-0001", "--json") == 0

        assert json.loads(capsys.readouterr().out)["richMenuId"] == "richmenu-0001"

    def test_unreachable_api_prints_error(self, capsys):
        assert main(["list"], client=make_client(refuse_connection)) == 1

        err = capsys.readouterr().err
        assert "❌ API error (HTTP 503)" in err
        assert "connection refused" in err

    def test_get_missing_prints_error(self, run_cli, capsys):
        assert run_cli("get", "richmenu-missing") == 1

        err = capsys.readouterr().err
        assert "❌ API error (HTTP 404)" in err
        assert "Details:" in err

    def test_create_from_template(self, run_cli, fake_line, capsys):
        assert run_cli("create", "--template", "six-grid", "--name", "Spring campaign") == 0

        [menu] = fake_line.menus.values()
        assert menu["name"] == "Spring campaign"
        assert menu["chatBarText"] == "Open menu"
        assert f"✅ Create rich menu: ID: {menu['richMenuId']}" in capsys.readouterr().out

    def test_create_from_file(self, run_cli, fake_line, menu_file):
        assert run_cli("create", "--file", menu_file, "--chat-bar-text", "Shop") == 0

        [menu] = fake_line.menus.values()
        assert menu["chatBarText"] == "Shop"

    def test_create_validate_only(self, run_cli, fake_line, menu_file, capsys):
        assert run_cli("create", "--file", menu_file, "--validate-only") == 0

        assert fake_line.menus == {}
        assert "the rich menu is valid" in capsys.readouterr().out

    def test_create_from_multi_page_template(self, run_cli, fake_line, capsys):
        assert run_cli("create", "--template", "tabs") == 1

        assert "deploy-template" in capsys.readouterr().err
        assert fake_line.requests == []

    def test_create_from_missing_file(self, run_cli, tmp_path, capsys):
        assert run_cli("create", "--file", str(tmp_path / "nope.json")) == 1
        assert "File not found" in capsys.readouterr().err

    def test_create_from_invalid_json(self, run_cli, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        assert run_cli("create", "--file", str(path)) == 1
        assert "is not valid JSON" in capsys.readouterr().err

    def test_create_with_invalid_menu(self, run_cli, tmp_path, sample_menu, fake_line, capsys):
        sample_menu["chatBarText"] = "x" * 20
        path = tmp_path / "menu.json"
        path.write_text(json.dumps(sample_menu), encoding="utf-8")

        assert run_cli("create", "--file", str(path)) == 1
        assert "Invalid rich menu" in capsys.readouterr().err
        assert fake_line.requests == []

    def test_validate(self, run_cli, menu_file, capsys):
        assert run_cli("validate", "--file", menu_file) == 0
        assert "✅ Validate" in capsys.readouterr().out

    def test_delete_with_yes(self, run_cli, fake_line, sample_menu):
        add_menu(fake_line, sample_menu)

        assert run_cli("delete", "richmenu-0001", "--yes") == 0
        assert fake_line.menus == {}

    def test_delete_cancelled(self, run_cli, fake_line, sample_menu, monkeypatch, capsys):
        add_menu(fake_line, sample_menu)
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        assert run_cli("delete", "richmenu-0001") == 0
        assert "Cancelled." in capsys.readouterr().out
        assert "richmenu-0001" in fake_line.menus

    def test_delete_confirmed(self, run_cli, fake_line, sample_menu, monkeypatch):
        add_menu(fake_line, sample_menu)
        monkeypatch.setattr("builtins.input", lambda prompt: "y")

        assert run_cli("delete", "richmenu-0001") == 0
        assert fake_line.menus == {}


class TestImages:
    """Image commands."""

    def test_upload_and_download(self, run_cli, fake_line, sample_menu, png_bytes, tmp_path):
        add_menu(fake_line, sample_menu)
        image = tmp_path / "menu.png"
        image.write_bytes(png_bytes)
        output = tmp_path / "out" / "downloaded.png"

        assert run_cli("upload-image", "richmenu-0001", str(image)) == 0
        assert run_cli("download-image", "richmenu-0001", "-o", str(output)) == 0

        assert output.read_bytes() == png_bytes

    def test_upload_oversized(self, run_cli, fake_line, sample_menu, tmp_path, capsys):
        add_menu(fake_line, sample_menu)
        image = tmp_path / "big.png"
        image.write_bytes(bytes(1048577))

        assert run_cli("upload-image", "richmenu-0001", str(image)) == 1
        assert "1 MB limit" in capsys.readouterr().err
        assert fake_line.images == {}


class TestDefaultAndUsers:
    """default, user and bulk commands."""

    def test_default(self, run_cli, fake_line, sample_menu, capsys):
        add_menu(fake_line, sample_menu)

        assert run_cli("default", "get") == 0
        assert "No default rich menu is set." in capsys.readouterr().out

        assert run_cli("default", "set", "richmenu-0001") == 0
        assert run_cli("default", "get") == 0
        assert "Default rich menu ID: richmenu-0001" in capsys.readouterr().out

        assert run_cli("default", "clear") == 0
        assert fake_line.default_menu is None

    def test_user(self, run_cli, fake_line, sample_menu, capsys):
        add_menu(fake_line, sample_menu)

        assert run_cli("user", "link", USER_ID, "richmenu-0001") == 0
        assert run_cli("user", "get", USER_ID) == 0
        assert f"Rich menu linked to {USER_ID}: richmenu-0001" in capsys.readouterr().out

        assert run_cli("user", "unlink", USER_ID) == 0
        assert run_cli("user", "get", USER_ID) == 0
        assert "No rich menu is linked" in capsys.readouterr().out

    def test_bulk_from_file(self, run_cli, fake_line, sample_menu, tmp_path):
        add_menu(fake_line, sample_menu)
        user_ids = [f"U{i:032x}" for i in range(3)]
        users_file = tmp_path / "users.txt"
        users_file.write_text("\n".join(user_ids) + "\n\n", encoding="utf-8")

        assert run_cli("bulk", "link", "richmenu-0001", "--users-file", str(users_file)) == 0
        assert set(fake_line.user_menus) == set(user_ids)

        assert run_cli("bulk", "unlink", user_ids[0]) == 0
        assert set(fake_line.user_menus) == set(user_ids[1:])

    def test_bulk_without_users(self, run_cli, capsys):
        assert run_cli("bulk", "unlink") == 1
        assert "No user IDs given" in capsys.readouterr().err


class TestAliases:
    """alias commands."""

    def test_alias_commands(self, run_cli, fake_line, sample_menu, capsys):
        add_menu(fake_line, sample_menu, "richmenu-0001")
        add_menu(fake_line, sample_menu, "richmenu-0002")

        assert run_cli("alias", "list") == 0
        assert "📋 No aliases." in capsys.readouterr().out

        assert run_cli("alias", "create", "richmenu-alias-a", "richmenu-0001") == 0
        assert run_cli("alias", "update", "richmenu-alias-a", "richmenu-0002") == 0
        assert run_cli("alias", "get", "richmenu-alias-a") == 0
        assert "richmenu-alias-a ➜ richmenu-0002" in capsys.readouterr().out

        assert run_cli("alias", "delete", "richmenu-alias-a") == 0
        assert fake_line.aliases == {}


class TestTemplates:
    """templates and deploy-template commands."""

    def test_templates(self, run_cli, capsys):
        assert run_cli("templates") == 0

        out = capsys.readouterr().out
        assert "six-grid" in out
        assert "(2 pages)" in out

    def test_deploy_template(self, run_cli, fake_line, sample_menu, capsys):
        add_menu(fake_line, sample_menu, "richmenu-old")

        assert run_cli("deploy-template", "tabs", "--clean") == 0

        assert "richmenu-old" not in fake_line.menus
        assert set(fake_line.aliases) == {"richmenu-alias-tab-a", "richmenu-alias-tab-b"}
        assert fake_line.default_menu == fake_line.aliases["richmenu-alias-tab-a"]
        assert "Deleted 1 existing rich menus" in capsys.readouterr().out

    def test_deploy_without_default(self, run_cli, fake_line):
        assert run_cli("deploy-template", "two-columns", "--no-default") == 0

        assert len(fake_line.menus) == 1
        assert fake_line.default_menu is None

    def test_deploy_unknown_template(self, run_cli, capsys):
        assert run_cli("deploy-template", "missing") == 1
        assert "Template not found: missing" in capsys.readouterr().err
