"""CLI tests: exit codes, flag/env precedence and output delivery."""

import json

import httpx
import pytest
import respx
from typer.testing import CliRunner

from inkrypt_deploy.main import app
from inkrypt_deploy.naming import derive_names

runner = CliRunner()

BASE_URL = "https://api.cloudflare.com/client/v4"
ZONE_ID = "zone-123"
RECORDS_PATH = f"/zones/{ZONE_ID}/dns_records"
ROUTES_PATH = f"/zones/{ZONE_ID}/workers/routes"


def parse_step_outputs(text):
    values = {}
    lines = text.split("\n")
    i = 0
    while i < len(lines):
        if "<<" not in lines[i]:
            i += 1
            continue
        key, delimiter = lines[i].split("<<", 1)
        end = lines.index(delimiter, i + 1)
        values[key] = "\n".join(lines[i + 1 : end])
        i = end + 1
    return values


@pytest.fixture
def token_env(monkeypatch):
    monkeypatch.setenv("CLOUDFLARE_API_TOKEN", "env-token")


class TestUsage:
    def test_no_subcommand_exits_2(self):
        result = runner.invoke(app, [])

        assert result.exit_code == 2
        assert "resolve-config" in result.stderr
        assert result.stdout == ""

    def test_unknown_command_exits_2(self):
        result = runner.invoke(app, ["deploy-everything"])

        assert result.exit_code == 2

    def test_missing_required_flag_exits_2(self, token_env):
        result = runner.invoke(app, ["ensure-dns-a", "--name", "notes.example.com"])

        assert result.exit_code == 2

    def test_invalid_settings_exit_1(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        result = runner.invoke(app, ["resolve-config", "--domain", "notes.example.com"])

        assert result.exit_code == 1
        assert "Invalid log level" in result.stderr

    def test_blank_route_list_exits_2(self, token_env):
        result = runner.invoke(
            app,
            ["ensure-worker-routes", "--zone-id", ZONE_ID, "--worker-name", "w", "--route", " , "],
        )

        assert result.exit_code == 2


class TestResolveConfig:
    def test_prints_json_without_output_sink(self):
        result = runner.invoke(app, ["resolve-config", "--domain", "HTTPS://Notes.Example.com/"])

        assert result.exit_code == 0, result.stderr
        data = json.loads(result.stdout)
        names = derive_names("notes.example.com")
        assert data == {
            "domain": "notes.example.com",
            "origin": "https://notes.example.com",
            "rp_id": "notes.example.com",
            "rp_name": "Inkrypt",
            "cors_origin": "https://notes.example.com",
            "cookie_samesite": "Lax",
            "worker_name": names["worker_name"],
            "d1_name": names["d1_name"],
        }
        assert "Resolved deploy config for notes.example.com" in result.stderr

    def test_writes_step_outputs(self, monkeypatch, tmp_path):
        sink = tmp_path / "github_output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(sink))
        monkeypatch.setenv("INKRYPT_DOMAIN", "notes.example.com")
        monkeypatch.setenv("INKRYPT_RP_NAME", "Team Notes")

        result = runner.invoke(app, ["resolve-config", "--worker-name", "pinned-worker"])

        assert result.exit_code == 0, result.stderr
        outputs = parse_step_outputs(sink.read_text())
        assert outputs["domain"] == "notes.example.com"
        assert outputs["rp_name"] == "Team Notes"
        assert outputs["worker_name"] == "pinned-worker"
        assert outputs["d1_name"] == derive_names("notes.example.com")["d1_name"]
        assert "Resolved deploy config" in result.stdout

    def test_flag_beats_env(self, monkeypatch):
        monkeypatch.setenv("DOMAIN", "env.example.com")

        result = runner.invoke(app, ["resolve-config", "--domain", "flag.example.com"])

        assert json.loads(result.stdout)["domain"] == "flag.example.com"

    @pytest.mark.parametrize(
        ("args", "message"),
        [
            (["--domain", "example.com:8080"], "port"),
            (["--domain", "localhost"], "at least one dot"),
            ([], "DOMAIN is required"),
            (["--domain", "notes.example.com", "--cookie-samesite", "loose"], "SameSite"),
        ],
    )
    def test_invalid_input_exits_1(self, args, message):
        result = runner.invoke(app, ["resolve-config", *args])

        assert result.exit_code == 1
        assert "Error:" in result.stderr
        assert message in result.stderr
        assert result.stdout == ""


def zone_envelope(name):
    return {
        "success": True,
        "errors": [],
        "messages": [],
        "result": [{"id": "zone-123", "name": name, "account": {"id": "acc-9"}}],
    }


class TestResolveZone:
    def test_missing_token_exits_1_without_network(self):
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as respx_mock:
            route = respx_mock.get("/zones")

            result = runner.invoke(app, ["resolve-zone", "--domain", "notes.example.com"])

        assert result.exit_code == 1
        assert "CLOUDFLARE_API_TOKEN" in result.stderr
        assert not route.called

    def test_token_flag_beats_env(self, token_env):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            route = respx_mock.get("/zones").mock(
                return_value=httpx.Response(httpx.codes.OK, json=zone_envelope("example.com"))
            )

            result = runner.invoke(
                app, ["resolve-zone", "--domain", "example.com", "--token", "flag-token"]
            )

        assert result.exit_code == 0, result.stderr
        assert route.calls.last.request.headers["Authorization"] == "Bearer flag-token"
        assert json.loads(result.stdout) == {
            "zone_id": "zone-123",
            "zone_name": "example.com",
            "account_id": "acc-9",
        }

    def test_api_error_exits_1(self, token_env):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get("/zones").mock(
                return_value=httpx.Response(
                    httpx.codes.FORBIDDEN,
                    json={
                        "success": False,
                        "errors": [{"code": 9109, "message": "Invalid access token"}],
                    },
                )
            )

            result = runner.invoke(app, ["resolve-zone", "--domain", "example.com"])

        assert result.exit_code == 1
        assert "Invalid access token" in result.stderr

    def test_network_failure_exits_1(self, token_env):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get("/zones").mock(side_effect=httpx.ConnectError("connection refused"))

            result = runner.invoke(app, ["resolve-zone", "--domain", "notes.example.com"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Error:" in result.stderr
        assert "ConnectError" in result.stderr
        assert "Traceback" not in result.stderr

    def test_malformed_zone_exits_1(self, token_env):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get("/zones").mock(
                return_value=httpx.Response(
                    httpx.codes.OK,
                    json={"success": True, "result": [{"name": "notes.example.com"}]},
                )
            )

            result = runner.invoke(app, ["resolve-zone", "--domain", "notes.example.com"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "malformed" in result.stderr


class TestEnsureDnsA:
    def test_creates_record_with_defaults(self, token_env):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get(RECORDS_PATH).mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": []}
                )
            )
            create = respx_mock.post(RECORDS_PATH).mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": {"id": "rec-1"}}
                )
            )

            result = runner.invoke(
                app, ["ensure-dns-a", "--zone-id", ZONE_ID, "--name", "Notes.Example.com"]
            )

        assert result.exit_code == 0, result.stderr
        body = json.loads(create.calls.last.request.content)
        assert body == {
            "type": "A",
            "name": "notes.example.com",
            "content": "192.0.2.1",
            "ttl": 1,
            "proxied": True,
        }
        assert json.loads(result.stdout) == {
            "action": "created",
            "record_id": "rec-1",
            "name": "notes.example.com",
            "ip": "192.0.2.1",
            "proxied": True,
        }
        assert "DNS A notes.example.com -> 192.0.2.1: created" in result.stderr

    def test_proxied_flag_is_parsed(self, token_env):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get(RECORDS_PATH).mock(
                return_value=httpx.Response(httpx.codes.OK, json={"success": True, "result": []})
            )
            create = respx_mock.post(RECORDS_PATH).mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": {"id": "rec-1"}}
                )
            )

            result = runner.invoke(
                app,
                [
                    "ensure-dns-a",
                    "--zone-id",
                    ZONE_ID,
                    "--name",
                    "notes.example.com",
                    "--ip",
                    "203.0.113.9",
                    "--proxied",
                    "off",
                ],
            )

        assert result.exit_code == 0, result.stderr
        body = json.loads(create.calls.last.request.content)
        assert body["proxied"] is False
        assert body["content"] == "203.0.113.9"

    def test_conflict_exits_1(self, token_env):
        existing = {
            "id": "rec-1",
            "type": "A",
            "name": "notes.example.com",
            "content": "198.51.100.7",
            "proxied": True,
        }
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get(RECORDS_PATH).mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": [existing]}
                )
            )

            result = runner.invoke(
                app, ["ensure-dns-a", "--zone-id", ZONE_ID, "--name", "notes.example.com"]
            )

        assert result.exit_code == 1
        assert "FORCE_TAKEOVER_DNS" in result.stderr

    def test_force_from_env(self, token_env, monkeypatch, tmp_path):
        sink = tmp_path / "github_output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(sink))
        monkeypatch.setenv("FORCE_TAKEOVER_DNS", "ON")
        existing = {
            "id": "rec-1",
            "type": "A",
            "name": "notes.example.com",
            "content": "198.51.100.7",
            "proxied": True,
        }
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get(RECORDS_PATH).mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": [existing]}
                )
            )
            update = respx_mock.put(f"{RECORDS_PATH}/rec-1").mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": {"id": "rec-1"}}
                )
            )

            result = runner.invoke(
                app, ["ensure-dns-a", "--zone-id", ZONE_ID, "--domain", "notes.example.com"]
            )

        assert result.exit_code == 0, result.stderr
        assert update.called
        outputs = parse_step_outputs(sink.read_text())
        assert outputs["action"] == "updated"
        assert outputs["proxied"] == "true"
        assert "DNS A notes.example.com -> 192.0.2.1: updated" in result.stdout


class TestEnsureWorkerRoutes:
    def test_comma_separated_and_repeated_routes(self, token_env):
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get(ROUTES_PATH).mock(
                return_value=httpx.Response(httpx.codes.OK, json={"success": True, "result": []})
            )
            create = respx_mock.post(ROUTES_PATH).mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": {"id": "route-1"}}
                )
            )

            result = runner.invoke(
                app,
                [
                    "ensure-worker-routes",
                    "--zone-id",
                    ZONE_ID,
                    "--worker-name",
                    "inkrypt-api-notes",
                    "--route",
                    "notes.example.com/*, www.example.com/*",
                    "--route",
                    "api.example.com/*",
                ],
            )

        assert result.exit_code == 0, result.stderr
        patterns = [json.loads(c.request.content)["pattern"] for c in create.calls]
        assert patterns == ["notes.example.com/*", "www.example.com/*", "api.example.com/*"]
        assert json.loads(result.stdout) == {
            "count": 3,
            "created": 3,
            "updated": 0,
            "unchanged": 0,
        }
        assert "Worker routes ensured (3)" in result.stderr

    def test_conflict_exits_1(self, token_env):
        existing = [{"id": "route-1", "pattern": "notes.example.com/*", "script": "someone-else"}]
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get(ROUTES_PATH).mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": existing}
                )
            )

            result = runner.invoke(
                app,
                [
                    "ensure-worker-routes",
                    "--zone-id",
                    ZONE_ID,
                    "--worker-name",
                    "inkrypt-api-notes",
                    "--route",
                    "notes.example.com/*",
                ],
            )

        assert result.exit_code == 1
        assert "someone-else" in result.stderr
        assert "FORCE_TAKEOVER_ROUTES" in result.stderr

    def test_force_switch_rebinds_foreign_route(self, token_env):
        existing = [{"id": "route-1", "pattern": "notes.example.com/*", "script": "someone-else"}]
        with respx.mock(base_url=BASE_URL) as respx_mock:
            respx_mock.get(ROUTES_PATH).mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": existing}
                )
            )
            update = respx_mock.put(f"{ROUTES_PATH}/route-1").mock(
                return_value=httpx.Response(
                    httpx.codes.OK, json={"success": True, "result": {"id": "route-1"}}
                )
            )

            result = runner.invoke(
                app,
                [
                    "ensure-worker-routes",
                    "--zone-id",
                    ZONE_ID,
                    "--worker-name",
                    "inkrypt-api-notes",
                    "--route",
                    "notes.example.com/*",
                    "--force",
                ],
            )

        assert result.exit_code == 0, result.stderr
        assert json.loads(update.calls.last.request.content)["script"] == "inkrypt-api-notes"
        assert json.loads(result.stdout)["updated"] == 1
