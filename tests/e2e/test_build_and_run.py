"""
End-to-end tests for a complete build-and-run cycle.

Shell scripts stand in for the build tool, the device tool and the open
tool. Every external call goes through the real command runners, so these
tests cover selection, scheme listing, discovery, the streamed build,
artifact resolution and deploy exactly as the command line drives them.
"""

import argparse
import json

import pytest

from xrunner.cli.main import EXIT_FAILURE, EXIT_OK, run

FAKE_BUILD_TOOL = """
printf '%s\\n' "$@" > "@STATE@/build-args"
for a in "$@"; do
  case "$a" in
    -list) echo '{"project": {"name": "App", "schemes": ["App"]}}'; exit 0 ;;
    -showdestinations)
      echo "{ platform:iOS Simulator, id:SIM-1, OS:17.0, name:iPhone 15 }"
      echo "{ platform:iOS, id:DEV-1, name:Test iPhone }"
      exit 0 ;;
  esac
done
while [ $# -gt 0 ]; do
  case "$1" in
    -derivedDataPath) DD="$2"; shift ;;
    -scheme) SCHEME="$2"; shift ;;
  esac
  shift
done
APP="$DD/Build/Products/Debug-iphonesimulator/$SCHEME.app"
mkdir -p "$APP"
cat > "$APP/Info.plist" <<EOF
<?xml version="1.0" encoding="UTF-8"?>
<plist version="1.0"><dict><key>CFBundleIdentifier</key><string>com.example.App</string></dict></plist>
EOF
echo "Resolve Package Graph"
echo "SwiftCompile normal arm64 /src/App/ContentView.swift"
echo "Ld $APP/$SCHEME normal"
echo "CodeSign $APP"
echo "** BUILD SUCCEEDED **"
"""

FAKE_DEVICE_TOOL = """
echo "$*" >> "@STATE@/device-calls"
case "$1" in
  simctl)
    case "$2" in
      list) cat "@STATE@/simulators.json" ;;
    esac ;;
  xctrace)
    echo "== Devices =="
    echo "Test iPhone (17.2) (DEV-1)"
    echo ""
    echo "== Simulators ==" ;;
  devicectl)
    case "$3" in
      install)
        echo "Preparing device"
        echo "Copying files"
        echo "Installing app" ;;
      process)
        n=$(cat "@STATE@/launches" 2>/dev/null || echo 0)
        n=$((n+1))
        echo $n > "@STATE@/launches"
        if [ $n -eq 1 ]; then
          echo "ERROR: The device is locked." 1>&2
          exit 1
        fi ;;
      info)
        n=$(cat "@STATE@/polls" 2>/dev/null || echo 0)
        n=$((n+1))
        echo $n > "@STATE@/polls"
        while [ $# -gt 0 ]; do
          if [ "$1" = "--json-output" ]; then out="$2"; fi
          shift
        done
        if [ $n -lt 3 ]; then
          echo '{"result": {"passcodeRequired": true}}' > "$out"
        else
          echo '{"result": {"passcodeRequired": false}}' > "$out"
        fi ;;
    esac ;;
esac
"""

FAKE_OPEN_TOOL = """
echo "$*" >> "@STATE@/open-calls"
"""

SIMULATORS = {
    "devices": {
        "com.apple.CoreSimulator.SimRuntime.iOS-17-0": [
            {"name": "iPhone 15", "udid": "SIM-1", "state": "Shutdown", "isAvailable": True},
        ]
    }
}


@pytest.fixture
def state_dir(temp_dir):
    path = temp_dir / "fake-state"
    path.mkdir()
    (path / "simulators.json").write_text(json.dumps(SIMULATORS))
    return path


@pytest.fixture
def toolchain(app_config, temp_dir, state_dir, test_utils):
    def install(name, body):
        return str(test_utils.write_script(temp_dir / name, body.replace("@STATE@", str(state_dir))))

    app_config.tools.build_tool = install("fake-xcodebuild", FAKE_BUILD_TOOL)
    app_config.tools.device_tool = install("fake-xcrun", FAKE_DEVICE_TOOL)
    app_config.tools.open_tool = install("fake-open", FAKE_OPEN_TOOL)
    return app_config


@pytest.fixture
def project_dir(temp_dir, monkeypatch):
    path = temp_dir / "proj"
    (path / "App.xcodeproj").mkdir(parents=True)
    monkeypatch.chdir(path)
    return path


def make_args(**overrides):
    values = dict(project=None, scheme=None, device=None, auto=False,
                  verbose=False, console=False, config=None)
    values.update(overrides)
    return argparse.Namespace(**values)


def progress_lines(output):
    return [line for line in output.splitlines() if line.startswith("[")]


@pytest.mark.e2e
class TestBuildAndRun:
    """Complete runs through the command line entry point."""

    @pytest.mark.asyncio
    async def test_run_on_stopped_simulator(self, toolchain, project_dir, state_dir, capsys):
        """The simulator is booted, then the built bundle is installed and launched."""
        exit_code = await run(make_args(device="iPhone 15"), toolchain)

        assert exit_code == EXIT_OK
        output = capsys.readouterr().out
        run_lines = [line for line in progress_lines(output) if "%]" not in line]
        assert run_lines == [
            "[booting] Booting iPhone 15...",
            "[installing] Installing app...",
            "[launching] Launching app...",
            "[running] App is running on iPhone 15",
        ]
        assert "[100%] Build succeeded" in output
        assert "is running on iPhone 15" in output.splitlines()[-1]

        calls = (state_dir / "device-calls").read_text().splitlines()
        assert "simctl boot SIM-1" in calls
        install = next(c for c in calls if c.startswith("simctl install SIM-1 "))
        assert install.endswith("App.app")
        assert "simctl launch SIM-1 com.example.App" in calls
        assert (state_dir / "open-calls").read_text().splitlines() == ["-a Simulator"]

    @pytest.mark.asyncio
    async def test_locked_device_launch_is_retried(self, toolchain, project_dir, state_dir, capsys):
        """A launch refused by a locked device waits for unlock and retries once."""
        exit_code = await run(make_args(device="DEV-1"), toolchain)

        assert exit_code == EXIT_OK
        run_lines = [line for line in progress_lines(capsys.readouterr().out) if "%]" not in line]
        assert run_lines[:2] == [
            "[checking-device] Checking device connection...",
            "[installing] Installing app on Test iPhone...",
        ]
        assert run_lines.count("[waiting-for-unlock] Waiting for device to be unlocked...") == 1
        assert run_lines.count("[launching] Retrying launch...") == 1
        assert run_lines[-1] == "[running] App is running on Test iPhone"

        assert (state_dir / "launches").read_text().strip() == "2"
        assert (state_dir / "polls").read_text().strip() == "3"
        calls = (state_dir / "device-calls").read_text().splitlines()
        assert not any(c.startswith("simctl boot") for c in calls)

    @pytest.mark.asyncio
    async def test_unknown_scheme_fails_before_building(self, toolchain, project_dir, state_dir):
        """A scheme that does not exist ends the run without building."""
        exit_code = await run(make_args(scheme="Nope", auto=True), toolchain)

        assert exit_code == EXIT_FAILURE
        # Only the scheme listing reached the build tool.
        assert "-list" in (state_dir / "build-args").read_text().splitlines()

    @pytest.mark.asyncio
    async def test_scheme_listing_is_cached_between_runs(self, toolchain, project_dir, state_dir):
        """The second run reuses the persisted scheme listing."""
        assert await run(make_args(device="iPhone 15"), toolchain) == EXIT_OK
        (state_dir / "build-args").unlink()

        assert await run(make_args(auto=True, scheme="Nope"), toolchain) == EXIT_FAILURE
        # The failing selection happened without invoking the build tool.
        assert not (state_dir / "build-args").exists()
