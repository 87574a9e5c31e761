"""Test configuration for intentsmith."""

import pytest
from pathlib import Path
import tempfile

from intentsmith.core.types import ServiceResult
from intentsmith.models.command import ExtraParameter, ExtraSource, ExtraType
from intentsmith.models.permission import ProtectionLevel
from intentsmith.services.permissions import PermissionClassifier


SAMPLE_MANIFEST = """<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android"
    xmlns:tools="http://schemas.android.com/tools"
    package="com.example.app">

    <permission
        android:name="com.example.app.permission.PRIVATE"
        android:protectionLevel="signature" />
    <uses-permission android:name="android.permission.INTERNET" />

    <application android:label="Example">
        <activity android:name=".MainActivity" android:exported="true">
            <intent-filter>
                <action android:name="android.intent.action.MAIN" />
                <category android:name="android.intent.category.LAUNCHER" />
            </intent-filter>
        </activity>
        <activity android:name=".DeepLinkActivity">
            <intent-filter>
                <action android:name="android.intent.action.VIEW" />
                <category android:name="android.intent.category.DEFAULT" />
                <category android:name="android.intent.category.BROWSABLE" />
                <data android:scheme="example" android:host="open" android:pathPrefix="/item" />
            </intent-filter>
        </activity>
        <activity android:name=".InternalActivity" />
        <activity android:name=".HiddenActivity" android:exported="false">
            <intent-filter>
                <action android:name="com.example.app.HIDDEN" />
            </intent-filter>
        </activity>
        <activity android:name=".RemovedActivity" android:exported="true" tools:node="remove" />
        <service
            android:name="com.example.app.sync.SyncService"
            android:exported="true"
            android:permission="com.example.app.permission.PRIVATE" />
        <receiver
            android:name=".BootReceiver"
            android:exported="true"
            android:enabled="false"
            android:permission="android.permission.RECEIVE_BOOT_COMPLETED">
            <intent-filter>
                <action android:name="android.intent.action.BOOT_COMPLETED" />
            </intent-filter>
        </receiver>
        <provider
            android:name=".data.ItemProvider"
            android:authorities="com.example.app.items;com.example.app.items2"
            android:exported="true"
            android:readPermission="android.permission.READ_CONTACTS" />
        <activity-alias
            android:name=".Launcher"
            android:targetActivity=".MainActivity"
            android:exported="true" />
    </application>
</manifest>
"""

SECOND_MANIFEST = """<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android"
    package="org.other.tool"
    android:sharedUserId="org.other.shared">
    <application>
        <receiver android:name="org.other.tool.PingReceiver" android:exported="true">
            <intent-filter>
                <action android:name="org.other.tool.PING" />
            </intent-filter>
        </receiver>
        <service android:name=".JobService" android:exported="true"
            android:permission="android.permission.BIND_JOB_SERVICE" />
    </application>
</manifest>
"""

DEEP_LINK_SOURCE = """package com.example.app;

import android.app.Activity;
import android.content.Intent;
import android.os.Bundle;

public class DeepLinkActivity extends Activity {
    @Override
    protected void onCreate(Bundle savedInstanceState) {
        super.onCreate(savedInstanceState);
        Intent intent = getIntent();
        String itemId = intent.getStringExtra("item_id");
        int count = intent.getIntExtra("count", 3);
        boolean debug = intent.getBooleanExtra("debug", false);
        open(itemId, count, debug);
    }

    private void open(String id, int count, boolean debug) {
    }
}
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path: A Path object pointing to the temporary directory.
            The directory is automatically cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_manifest_bytes():
    """Manifest exercising every component kind and attribute form."""
    return SAMPLE_MANIFEST.encode("utf-8")


@pytest.fixture
def project_tree(temp_dir):
    """Create a two-app project tree with manifests and one source file.

    Layout::

        app/src/main/AndroidManifest.xml          com.example.app
        app/src/main/java/com/example/app/DeepLinkActivity.java
        tool/src/main/AndroidManifest.xml         org.other.tool (sharedUserId)
        broken/AndroidManifest.xml                malformed
        app/build/.../AndroidManifest.xml         excluded build output

    Returns:
        Path: The project root.
    """
    app_main = temp_dir / "app" / "src" / "main"
    (app_main / "java" / "com" / "example" / "app").mkdir(parents=True)
    (app_main / "AndroidManifest.xml").write_text(SAMPLE_MANIFEST, encoding="utf-8")
    (app_main / "java" / "com" / "example" / "app" / "DeepLinkActivity.java").write_text(
        DEEP_LINK_SOURCE, encoding="utf-8"
    )

    tool_main = temp_dir / "tool" / "src" / "main"
    tool_main.mkdir(parents=True)
    (tool_main / "AndroidManifest.xml").write_text(SECOND_MANIFEST, encoding="utf-8")

    broken = temp_dir / "broken"
    broken.mkdir()
    (broken / "AndroidManifest.xml").write_text("<manifest package='x'><application>", encoding="utf-8")

    generated = temp_dir / "app" / "build" / "intermediates" / "merged_manifest"
    generated.mkdir(parents=True)
    (generated / "AndroidManifest.xml").write_text(SAMPLE_MANIFEST, encoding="utf-8")

    return temp_dir


@pytest.fixture
def classifier():
    """Small, fixed permission table so tests do not depend on the bundled one."""
    return PermissionClassifier({
        "android.permission.INTERNET": ProtectionLevel.NORMAL,
        "android.permission.RECEIVE_BOOT_COMPLETED": ProtectionLevel.NORMAL,
        "android.permission.READ_CONTACTS": ProtectionLevel.DANGEROUS,
        "android.permission.BIND_JOB_SERVICE": ProtectionLevel.SIGNATURE,
    })


class StubOracle:
    """Installed-package oracle returning a fixed set, or raising."""

    def __init__(self, packages=None, error=None):
        self.packages = set(packages or ())
        self.error = error
        self.calls = 0

    def list_installed_packages(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return set(self.packages)


class StubInference:
    """Inference client returning fixed extras for every component."""

    def __init__(self, extras=None, fail_with=None):
        self.extras = list(extras or [])
        self.fail_with = fail_with
        self.calls = []

    async def infer(self, component, intent_filter=None, source_text=None, hints=()):
        self.calls.append((component.name, source_text, list(hints)))
        if self.fail_with is not None:
            from intentsmith.core.types import RunWarning, WarningScope
            return ServiceResult.fail(
                str(self.fail_with),
                warnings=[RunWarning.from_error(WarningScope.COMPONENT, component.name, self.fail_with)],
            )
        return ServiceResult.ok(list(self.extras))


@pytest.fixture
def stub_oracle():
    return StubOracle


@pytest.fixture
def stub_inference():
    return StubInference


@pytest.fixture
def fixed_extras():
    return [
        ExtraParameter(key="item_id", type=ExtraType.STRING, example="42", source=ExtraSource.LLM_INFERRED),
        ExtraParameter(key="debug", type=ExtraType.BOOL, example="yes", source=ExtraSource.LLM_INFERRED),
    ]
