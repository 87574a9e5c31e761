"""Unit tests for source location and Intent-context extraction."""

import pytest

from intentsmith.core.exceptions import SourceNotFoundError
from intentsmith.models.command import ExtraSource, ExtraType
from intentsmith.services.source import SourceLocator, extract_intent_context, read_source, scan_extras


@pytest.fixture
def source_tree(temp_dir):
    """Java and Kotlin sources spread over two modules."""
    files = {
        "app/src/main/java/com/example/app/MainActivity.java": "class MainActivity {}",
        "app/src/main/kotlin/com/example/app/sync/SyncService.kt": "class SyncService",
        "app/src/main/java/com/example/app/Outer.java": "class Outer { class Inner {} }",
        "lib/src/main/java/org/lib/Widget.java": "class Widget {}",
        "app/src/main/java/com/example/app/misplaced/Orphan.java": "class Orphan {}",
        "app/build/generated/com/example/app/Generated.java": "class Generated {}",
        "lib/src/main/java/org/lib/Dup.java": "class Dup {}",
        "app/src/main/java/org/lib/Dup.java": "class Dup {}",
    }
    for relative, content in files.items():
        path = temp_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return temp_dir


class TestSourceLocator:
    """Tests for class-name to file resolution."""

    def test_java_by_package_path(self, source_tree):
        found = SourceLocator(source_tree).find("com.example.app.MainActivity")
        assert found == source_tree / "app/src/main/java/com/example/app/MainActivity.java"

    def test_kotlin_by_package_path(self, source_tree):
        found = SourceLocator(source_tree).find("com.example.app.sync.SyncService")
        assert found.suffix == ".kt"

    def test_inner_class_resolves_to_outer_file(self, source_tree):
        found = SourceLocator(source_tree).find("com.example.app.Outer$Inner")
        assert found.name == "Outer.java"

    def test_excluded_directories_not_indexed(self, source_tree):
        assert SourceLocator(source_tree).find("com.example.app.Generated") is None

    def test_duplicate_choice_is_deterministic(self, source_tree):
        """Test that equal candidates resolve the same way every time."""
        first = SourceLocator(source_tree).find("org.lib.Dup")
        second = SourceLocator(source_tree).find("org.lib.Dup")
        assert first == second == source_tree / "app/src/main/java/org/lib/Dup.java"

    def test_fallback_to_unique_stem_under_manifest_dir(self, source_tree):
        """Test the file-name fallback.

        A file whose package path does not match is accepted only when it
        is the single file with that name below the manifest's directory.
        """
        locator = SourceLocator(source_tree)
        manifest_dir = source_tree / "app" / "src" / "main"
        assert locator.find("com.example.app.Orphan") is None
        assert locator.find("com.example.app.Orphan", manifest_dir) == (
            manifest_dir / "java/com/example/app/misplaced/Orphan.java"
        )

    def test_not_found(self, source_tree):
        locator = SourceLocator(source_tree)
        assert locator.find("com.example.app.Missing") is None
        with pytest.raises(SourceNotFoundError) as exc_info:
            locator.locate("com.example.app.Missing")
        assert exc_info.value.class_name == "com.example.app.Missing"

    @pytest.mark.asyncio
    async def test_read_source(self, source_tree):
        text = await read_source(source_tree / "lib/src/main/java/org/lib/Widget.java")
        assert text == "class Widget {}"


class TestExtractIntentContext:
    """Tests for reducing source to Intent-handling lines."""

    def test_keeps_lines_around_intent_access(self):
        """Test leading context, block tracking and trailing context.

        Verifies that unrelated code far from any Intent access is dropped
        while the accessing block and its neighbourhood are kept.
        """
        lines = [f"int filler{i} = {i};" for i in range(20)]
        lines += [
            "void onCreate() {",
            "    if (getIntent().hasExtra(\"id\")) {",
            "        String id = getIntent().getStringExtra(\"id\");",
        ]
        lines += [f"        step{k}();" for k in range(8)]
        lines += ["    }", "}"]
        lines += [f"int tail{i} = {i};" for i in range(20)]
        excerpt = extract_intent_context("\n".join(lines))

        assert 'getStringExtra("id")' in excerpt
        assert "filler16 = 16" in excerpt
        assert "filler15 = 15" not in excerpt
        assert "step7();" in excerpt
        assert "tail3 = 3" in excerpt
        assert "tail4 = 4" not in excerpt

    def test_no_intent_access_returns_source(self):
        source = "class Plain {\n  int x = 1;\n}"
        assert extract_intent_context(source) == source

    def test_truncated_to_max_chars(self):
        source = "\n".join(f'String v{i} = intent.getStringExtra("k{i}");' for i in range(500))
        assert len(extract_intent_context(source, max_chars=600)) == 600

    def test_lines_not_repeated(self):
        source = "a();\nintent.getAction();\nintent.getData();\nb();"
        excerpt = extract_intent_context(source)
        assert excerpt.splitlines() == ["a();", "intent.getAction();", "intent.getData();", "b();"]


class TestScanExtras:
    """Tests for the static get*Extra scan."""

    def test_typed_extras_in_source_order(self):
        source = '''
            String user = intent.getStringExtra("user");
            int count = intent.getIntExtra("count", 5);
            boolean debug = getIntent().getBooleanExtra("debug", true);
            long ts = intent.getLongExtra("ts", 10L);
            String[] tags = intent.getStringArrayExtra("tags");
        '''
        extras = scan_extras(source)
        assert [(e.key, e.type, e.example) for e in extras] == [
            ("user", ExtraType.STRING, ""),
            ("count", ExtraType.INT, "5"),
            ("debug", ExtraType.BOOL, "true"),
            ("ts", ExtraType.LONG, "10"),
            ("tags", ExtraType.STRING_ARRAY, ""),
        ]
        assert all(e.source is ExtraSource.SOURCE_SCAN for e in extras)

    def test_bundle_accessors(self):
        source = 'val mode = intent.extras?.getString("mode")\nval n = getExtras().getInt("n", 2)'
        extras = scan_extras(source)
        assert [(e.key, e.type, e.example) for e in extras] == [
            ("mode", ExtraType.STRING, ""),
            ("n", ExtraType.INT, "2"),
        ]

    def test_unsupported_types_and_duplicates_skipped(self):
        """Test that am-incompatible extras and repeated reads are dropped."""
        source = '''
            Parcelable p = intent.getParcelableExtra("payload");
            String a = intent.getStringExtra("a");
            String again = intent.getStringExtra("a");
            int flag = intent.getIntExtra("flag", DEFAULT_FLAG);
        '''
        extras = scan_extras(source)
        assert [(e.key, e.example) for e in extras] == [("a", ""), ("flag", "0")]

    def test_non_literal_keys_ignored(self):
        assert scan_extras("intent.getStringExtra(KEY_USER);") == []
