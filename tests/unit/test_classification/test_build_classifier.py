"""
Unit tests for the build output classifier.

Tests phase transitions, percentage monotonicity, terminal idempotence,
advisory device phases, diagnostics collection and artifact capture.
"""

import threading

import pytest

from xrunner.classification import BuildOutputClassifier
from xrunner.models.build import BuildPhase


@pytest.mark.unit
class TestPhaseTransitions:
    """Test cases for the main phase state machine."""

    def test_typical_build_sequence(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append)

        lines = [
            "Resolve Package Graph",
            "ProcessInfoPlistFile /tmp/App/Info.plist",
            "SwiftCompile normal arm64 /tmp/App/ContentView.swift",
            "SwiftCompile normal arm64 /tmp/App/AppMain.swift",
            "Ld /tmp/Build/Products/Debug-iphonesimulator/App.app/App normal",
            "CodeSign /tmp/Build/Products/Debug-iphonesimulator/App.app",
            "** BUILD SUCCEEDED **",
        ]
        for line in lines:
            classifier.feed(line)

        assert [e.phase for e in events] == [
            BuildPhase.RESOLVING_PACKAGES,
            BuildPhase.PROCESSING,
            BuildPhase.COMPILING,
            BuildPhase.COMPILING,
            BuildPhase.LINKING,
            BuildPhase.SIGNING,
            BuildPhase.SUCCEEDED,
        ]
        assert events[2].message == "Compiling ContentView.swift"
        assert events[-1].percentage == 100.0
        assert classifier.phase is BuildPhase.SUCCEEDED

    def test_percentage_never_decreases(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append)
        for line in [
            "Ld /tmp/App normal",
            "SwiftCompile normal arm64 /tmp/Late.swift",
            "Fetching https://github.com/example/package",
            "Copying /tmp/Resources",
        ]:
            classifier.feed(line)

        percentages = [e.percentage for e in events]
        assert percentages == sorted(percentages)
        # Compiling and fetching never move back from linking.
        assert [e.phase for e in events] == [BuildPhase.LINKING, BuildPhase.COPYING]

    def test_terminal_line_repeated_emits_once(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append)

        classifier.feed("** BUILD SUCCEEDED **")
        classifier.feed("** BUILD SUCCEEDED **")
        assert classifier.finish(True) is None

        assert len(events) == 1
        assert events[0].phase is BuildPhase.SUCCEEDED

    def test_non_terminal_after_terminal_is_ignored(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append)

        classifier.feed("** BUILD FAILED **")
        classifier.feed("CodeSign /tmp/App.app")
        classifier.feed("Waiting for device to be unlocked")

        assert [e.phase for e in events] == [BuildPhase.FAILED]

    def test_package_phases_may_cycle(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append)
        for line in [
            "Resolve Package Graph",
            "Fetching https://github.com/example/a",
            "Resolving dependencies",
            "Fetching https://github.com/example/b",
        ]:
            classifier.feed(line)

        assert [e.phase for e in events] == [
            BuildPhase.RESOLVING_PACKAGES,
            BuildPhase.FETCHING_PACKAGES,
            BuildPhase.RESOLVING_PACKAGES,
            BuildPhase.FETCHING_PACKAGES,
        ]

    def test_compile_percentage_scales_with_known_sources(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append, total_sources=4)
        for name in ("a", "b", "c", "d", "e"):
            classifier.feed(f"SwiftCompile normal arm64 /tmp/{name}.swift")

        assert [e.percentage for e in events] == [20.0, 40.0, 60.0, 80.0, 80.0]

    def test_finish_forces_failed_phase(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append)
        classifier.feed("SwiftCompile normal arm64 /tmp/a.swift")

        event = classifier.finish(False, "Build cancelled")

        assert event.phase is BuildPhase.FAILED
        assert event.message == "Build cancelled"
        assert event.percentage == 100.0
        assert events[-1] is event

    def test_unrecognized_lines_only_reach_transcript(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append)

        assert classifier.feed("note: Using new build system") == []
        assert classifier.feed("   ") == []

        assert events == []
        assert classifier.transcript == ["note: Using new build system"]


@pytest.mark.unit
class TestDevicePhases:
    """Test cases for advisory device phases."""

    def test_device_phase_reported_once_and_keeps_main_phase(self):
        events = []
        classifier = BuildOutputClassifier(on_progress=events.append)
        classifier.feed("SwiftCompile normal arm64 /tmp/a.swift")

        classifier.feed("Waiting for device to become available...")
        classifier.feed("Still waiting for device")

        device_events = [e for e in events if e.phase.is_advisory]
        assert len(device_events) == 1
        assert device_events[0].phase is BuildPhase.WAITING_FOR_DEVICE
        assert device_events[0].percentage == 50.0
        assert classifier.phase is BuildPhase.COMPILING

    def test_locked_device_message(self):
        classifier = BuildOutputClassifier()
        events = classifier.feed("error: The device is passcode protected.")

        assert events[0].phase is BuildPhase.WAITING_FOR_DEVICE
        assert classifier.errors == ["error: The device is passcode protected."]

    def test_preparing_then_registering(self):
        classifier = BuildOutputClassifier()
        first = classifier.feed("Preparing iPhone device for development")
        second = classifier.feed("Registering device with your team")

        assert first[0].phase is BuildPhase.PREPARING_DEVICE
        assert second[0].phase is BuildPhase.REGISTERING_DEVICE


@pytest.mark.unit
class TestDiagnosticsAndArtifacts:
    """Test cases for error collection and artifact path capture."""

    def test_errors_and_warnings_collected(self):
        classifier = BuildOutputClassifier()
        classifier.feed("/tmp/App/View.swift:3:5: error: cannot find 'x' in scope")
        classifier.feed("/tmp/App/View.swift:9:1: warning: unused variable 'y'")
        classifier.feed("** BUILD FAILED **")

        assert classifier.errors == ["/tmp/App/View.swift:3:5: error: cannot find 'x' in scope"]
        assert classifier.warnings == ["/tmp/App/View.swift:9:1: warning: unused variable 'y'"]

    def test_products_marker_preferred_on_same_line(self):
        classifier = BuildOutputClassifier()
        classifier.feed(
            "Touch /tmp/Other/Plugin.app "
            "/tmp/DD/Build/Products/Debug-iphonesimulator/App.app"
        )
        assert classifier.artifact_path == "/tmp/DD/Build/Products/Debug-iphonesimulator/App.app"

    def test_products_marker_replaces_earlier_bare_match(self):
        classifier = BuildOutputClassifier()
        classifier.feed("ProcessInfoPlistFile /tmp/Intermediates/App.app/Info.plist")
        assert classifier.artifact_path == "/tmp/Intermediates/App.app"

        classifier.feed("Touch /tmp/DD/Build/Products/Debug-iphoneos/App.app")
        classifier.feed("Touch /tmp/Elsewhere/Other.app")

        assert classifier.artifact_path == "/tmp/DD/Build/Products/Debug-iphoneos/App.app"

    def test_bare_names_without_directory_are_ignored(self):
        classifier = BuildOutputClassifier()
        classifier.feed("Signing App.app")
        assert classifier.artifact_path is None

    def test_concurrent_feeding_keeps_every_line(self):
        classifier = BuildOutputClassifier()

        def feed(prefix):
            for i in range(200):
                classifier.feed(f"{prefix} line {i}")

        threads = [threading.Thread(target=feed, args=(f"t{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(classifier.transcript) == 800
