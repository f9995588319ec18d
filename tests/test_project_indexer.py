from sensedev.indexer.project_indexer import ProjectIndexer


def test_index_sorts_by_language(project_builder) -> None:
    project_builder.write(
        {
            "app/src/main/kotlin/B.kt": "class B",
            "app/src/main/kotlin/A.kt": "class A",
            "app/src/main/java/C.java": "class C {}",
            "app/src/main/res/layout.xml": "<layout/>",
            "README.md": "# readme",
        }
    )

    index = ProjectIndexer().index_project(project_builder.path())

    root = project_builder.root.resolve()
    assert index.kotlin_files == [
        str(root / "app/src/main/kotlin/A.kt"),
        str(root / "app/src/main/kotlin/B.kt"),
    ]
    assert index.java_files == [str(root / "app/src/main/java/C.java")]
    assert index.total_files == 3
    assert index.all_files == sorted(index.kotlin_files + index.java_files)


def test_hidden_and_build_directories_are_skipped(project_builder) -> None:
    project_builder.write(
        {
            "Main.kt": "class Main",
            ".idea/Scratch.kt": "class Scratch",
            "app/build/generated/Gen.kt": "class Gen",
            "node_modules/lib/Lib.kt": "class Lib",
            ".Hidden.kt": "class Hidden",
        }
    )

    index = ProjectIndexer().index_project(project_builder.path())

    assert [f.rsplit("/", 1)[-1] for f in index.all_files] == ["Main.kt"]


def test_gitignore_is_honoured(project_builder) -> None:
    project_builder.write(
        {".gitignore": "Legacy.kt\n", "Legacy.kt": "class Legacy", "Main.kt": "class Main"}
    )

    followed = ProjectIndexer().index_project(project_builder.path())
    ignored = ProjectIndexer(follow_gitignore=False).index_project(project_builder.path())

    assert [f.rsplit("/", 1)[-1] for f in followed.kotlin_files] == ["Main.kt"]
    assert [f.rsplit("/", 1)[-1] for f in ignored.kotlin_files] == ["Legacy.kt", "Main.kt"]


def test_exclude_patterns(project_builder) -> None:
    project_builder.write(
        {
            "src/Main.kt": "class Main",
            "src/MainTest.kt": "class MainTest",
            "generated/Stub.java": "class Stub {}",
        }
    )

    index = ProjectIndexer(exclude_patterns=["*Test.kt", "generated/*", ""]).index_project(
        project_builder.path()
    )

    assert [f.rsplit("/", 1)[-1] for f in index.all_files] == ["Main.kt"]


def test_missing_directory(tmp_path) -> None:
    index = ProjectIndexer().index_project(str(tmp_path / "missing"))
    assert index.total_files == 0
