from shared.migrations.runner import VERSIONS_DIR, MigrationRunner


def test_bundled_versions_are_found():
    runner = MigrationRunner(pool=None)
    pending = runner.pending(set())

    assert pending
    assert pending[0].parent == VERSIONS_DIR
    assert pending[0].stem == "000_clip_queue"


def test_pending_skips_applied_and_keeps_order(tmp_path):
    for name in ("002_b.sql", "000_init.sql", "001_a.sql", "notes.txt"):
        (tmp_path / name).write_text("SELECT 1;")
    runner = MigrationRunner(pool=None, versions_dir=tmp_path)

    pending = runner.pending({"001_a"})

    assert [p.stem for p in pending] == ["000_init", "002_b"]


def test_schema_defines_queue_tables():
    sql = (VERSIONS_DIR / "000_clip_queue.sql").read_text(encoding="utf-8")
    for table in ("clips", "clip_submitters", "play_log", "clip_queue_settings"):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in sql
