"""
tests/test_templates.py
Unit tests for laragen.templates module (ArtifactCompiler).

Tests cover:
- Create, pivot and alter migrations (column order, bindings, morphs, down())
- Eloquent model generation (traits, fillable / guarded, casts, relationships)
- Factory and seeder generation
- Backed enum generation and case-name collisions
- Stub loading, overrides and placeholder substitution
- Code correctness (balanced braces in every generated file)
"""

from __future__ import annotations

import pathlib
from datetime import datetime
from typing import List

import pytest

from laragen.errors import InvalidEnumValue, TemplateNotFound
from laragen.models import (
    ArtifactKind,
    DeleteConstraint,
    EntityDefinition,
    FieldDefinition,
    GenerationConfig,
    JoinTableDefinition,
    RelationshipDefinition,
)
from laragen.relationships import ColumnBinding
from laragen.templates import (
    ArtifactCompiler,
    STUB_MODEL,
    cast_entries,
    fillable_entries,
    migration_stamp,
    parse_enum_values,
    render_stub,
)

STAMP: str = "2024_05_01_120000_"


# ===========================================================================
# Helper: crude PHP sanity check
# ===========================================================================


def _is_balanced(code: str) -> bool:
    """True when (), [] and {} are balanced outside single-quoted strings."""
    pairs = {")": "(", "]": "[", "}": "{"}
    stack: List[str] = []
    in_string = False
    escaped = False
    for ch in code:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "'":
                in_string = False
            continue
        if ch == "'":
            in_string = True
        elif ch in "([{":
            stack.append(ch)
        elif ch in pairs:
            if not stack or stack.pop() != pairs[ch]:
                return False
    return not stack and not in_string


@pytest.fixture()
def compiler(config: GenerationConfig) -> ArtifactCompiler:
    return ArtifactCompiler(config)


@pytest.fixture()
def author_binding() -> dict:
    return {"author_id": ColumnBinding("User", "users", DeleteConstraint.CASCADE)}


# ===========================================================================
# Migrations
# ===========================================================================


class TestSchemaMigration:
    def test_path_and_kind(self, compiler: ArtifactCompiler, post_entity: EntityDefinition) -> None:
        artifact = compiler.compile_schema(post_entity, stamp=STAMP)
        assert artifact.kind is ArtifactKind.SCHEMA
        assert artifact.name == "posts"
        assert artifact.path == "database/migrations/2024_05_01_120000_create_posts_table.php"

    def test_columns_in_order(
        self, compiler: ArtifactCompiler, post_entity: EntityDefinition, author_binding: dict
    ) -> None:
        text = compiler.compile_schema(post_entity, author_binding, STAMP).text_body
        expected = "\n".join(
            [
                "        Schema::create('posts', function (Blueprint $table) {",
                "            $table->id();",
                "            $table->string('title');",
                "            $table->text('body');",
                "            $table->dateTime('published_at')->nullable();",
                "            $table->enum('status', ['draft', 'published'])->default('draft');",
                "            $table->foreignId('author_id')->constrained('users')->cascadeOnDelete();",
                "            $table->timestamps();",
                "        });",
            ]
        )
        assert expected in text
        assert "Schema::dropIfExists('posts');" in text
        assert _is_balanced(text)

    def test_unbound_reference_uses_conventional_table(
        self, compiler: ArtifactCompiler, post_entity: EntityDefinition
    ) -> None:
        text = compiler.compile_schema(post_entity, stamp=STAMP).text_body
        assert "constrained('authors')" in text

    def test_soft_deletes_after_timestamps(self, compiler: ArtifactCompiler) -> None:
        entity = EntityDefinition(name="Post", fields={"title": "string"}, soft_delete=True)
        text = compiler.compile_schema(entity, stamp=STAMP).text_body
        assert text.index("$table->timestamps();") < text.index("$table->softDeletes();")

    def test_morph_to_adds_morphs(self, compiler: ArtifactCompiler) -> None:
        rel = RelationshipDefinition(
            source_entity="Comment",
            target_entity="Post",
            kind="morphTo",
            method_name="commentable",
            polymorphic_name="commentable",
        )
        entity = EntityDefinition(name="Comment", fields={"body": "text"}, relationships=[rel])
        text = compiler.compile_schema(entity, stamp=STAMP).text_body
        assert "            $table->morphs('commentable');" in text
        assert text.index("morphs(") < text.index("timestamps()")

    def test_default_stamp_is_current_time(self) -> None:
        assert migration_stamp(datetime(2024, 5, 1, 12, 0, 0)) == STAMP
        assert len(migration_stamp()) == len(STAMP)


class TestJoinMigration:
    def test_pivot_columns(self, compiler: ArtifactCompiler) -> None:
        join = JoinTableDefinition(
            table_name="post_tag",
            source_key="post_id",
            target_key="tag_id",
            source_table="posts",
            target_table="tags",
            with_timestamps=True,
        )
        artifact = compiler.compile_join_schema(join, STAMP, owning_entity="Post")
        assert artifact.kind is ArtifactKind.JOIN_SCHEMA
        assert artifact.path.endswith("create_post_tag_table.php")
        text = artifact.text_body
        assert "$table->foreignId('post_id')->constrained('posts')->cascadeOnDelete();" in text
        assert "$table->foreignId('tag_id')->constrained('tags')->cascadeOnDelete();" in text
        assert "$table->timestamps();" in text
        assert "$table->id();" not in text
        assert _is_balanced(text)

    def test_polymorphic_pivot_uses_morphs(self, compiler: ArtifactCompiler) -> None:
        join = JoinTableDefinition(
            table_name="taggables",
            source_key="taggable_id",
            target_key="tag_id",
            source_table="posts",
            target_table="tags",
            polymorphic_name="taggable",
        )
        text = compiler.compile_join_schema(join, STAMP).text_body
        assert "$table->morphs('taggable');" in text
        assert "foreignId('taggable_id')" not in text
        assert "$table->foreignId('tag_id')->constrained('tags')" in text

    def test_extra_fields(self, compiler: ArtifactCompiler) -> None:
        join = JoinTableDefinition(
            table_name="role_user",
            source_key="user_id",
            target_key="role_id",
            source_table="users",
            target_table="roles",
            extra_fields=[FieldDefinition(name="expires_at", kind="datetime", nullable=True)],
        )
        text = compiler.compile_join_schema(join, STAMP).text_body
        assert "$table->dateTime('expires_at')->nullable();" in text


class TestAlterMigration:
    def test_up_and_down(self, compiler: ArtifactCompiler) -> None:
        fields = [
            FieldDefinition(name="subtitle", kind="string", nullable=True),
            FieldDefinition(name="editor_id", kind="foreignId"),
        ]
        bindings = {"editor_id": ColumnBinding("User", "users", DeleteConstraint.SET_NULL)}
        artifact = compiler.compile_alter_schema("Post", fields, bindings, STAMP)
        assert artifact.kind is ArtifactKind.ALTER_SCHEMA
        assert artifact.path == "database/migrations/2024_05_01_120000_add_fields_to_posts_table.php"
        text = artifact.text_body
        assert "Schema::table('posts'" in text
        assert "$table->string('subtitle')->nullable();" in text
        assert "$table->foreignId('editor_id')->constrained('users')->nullOnDelete();" in text
        # down() drops in reverse order
        assert text.index("dropConstrainedForeignId('editor_id')") < text.index("dropColumn('subtitle')")
        assert _is_balanced(text)

    def test_morph_columns(self, compiler: ArtifactCompiler) -> None:
        text = compiler.compile_alter_schema("Comment", [], stamp=STAMP, morph_names=["commentable"]).text_body
        assert "            $table->morphs('commentable');" in text
        assert "            $table->dropMorphs('commentable');" in text


# ===========================================================================
# Model
# ===========================================================================


class TestEntityClass:
    def test_minimal_model(self, compiler: ArtifactCompiler, user_entity: EntityDefinition) -> None:
        artifact = compiler.compile_entity(user_entity)
        assert artifact.kind is ArtifactKind.ENTITY_CLASS
        assert artifact.path == "app/Models/User.php"
        text = artifact.text_body
        assert "namespace App\\Models;" in text
        assert "use Illuminate\\Database\\Eloquent\\Factories\\HasFactory;" in text
        assert "class User extends Model" in text
        assert "    use HasFactory;" in text
        assert "    protected $fillable = [\n        'name',\n        'email',\n    ];" in text
        assert "    protected $casts = [];" in text
        assert _is_balanced(text)

    def test_enum_cast_and_import(self, compiler: ArtifactCompiler, post_entity: EntityDefinition) -> None:
        text = compiler.compile_entity(post_entity).text_body
        assert "use App\\Enums\\PostStatusEnum;" in text
        assert "        'status' => PostStatusEnum::class," in text
        assert "        'published_at' => 'datetime'," in text

    def test_guarded_protection(self, compiler: ArtifactCompiler) -> None:
        entity = EntityDefinition(name="Post", fields={"title": "string"}, protection_mode="denyAll")
        text = compiler.compile_entity(entity).text_body
        assert "protected $guarded = [];" in text
        assert "$fillable" not in text

    def test_traits(self, compiler: ArtifactCompiler) -> None:
        entity = EntityDefinition(
            name="Document", fields={"uuid": "uuid", "title": "string"}, soft_delete=True
        )
        text = compiler.compile_entity(entity).text_body
        assert "    use HasFactory, HasUuids, SoftDeletes;" in text
        assert "use Illuminate\\Database\\Eloquent\\Concerns\\HasUuids;" in text
        assert "use Illuminate\\Database\\Eloquent\\SoftDeletes;" in text
        assert "return ['uuid'];" in text

    def test_relationship_methods(self, compiler: ArtifactCompiler, post_entity: EntityDefinition) -> None:
        rel = RelationshipDefinition(
            source_entity="Post",
            target_entity="User",
            kind="belongsTo",
            method_name="author",
            foreign_key="author_id",
        )
        text = compiler.compile_entity(post_entity.with_relationships([rel])).text_body
        assert "    public function author(): \\Illuminate\\Database\\Eloquent\\Relations\\BelongsTo" in text
        assert "        return $this->belongsTo(User::class, 'author_id');" in text
        assert _is_balanced(text)

    def test_morph_columns_are_fillable(self) -> None:
        rel = RelationshipDefinition(
            source_entity="Comment", target_entity="Post", kind="morphTo", method_name="commentable"
        )
        entity = EntityDefinition(name="Comment", fields={"body": "text"}, relationships=[rel])
        assert fillable_entries(entity) == ["'body'", "'commentable_type'", "'commentable_id'"]

    def test_cast_entries_fully_qualified(self, post_entity: EntityDefinition) -> None:
        entries = cast_entries("Post", post_entity.fields.values(), enum_namespace="App\\Enums")
        assert "'status' => \\App\\Enums\\PostStatusEnum::class" in entries


# ===========================================================================
# Factory, seeder, enums
# ===========================================================================


class TestFixtureAndSeed:
    def test_factory(
        self, compiler: ArtifactCompiler, post_entity: EntityDefinition, author_binding: dict
    ) -> None:
        artifact = compiler.compile_fixture(post_entity, author_binding)
        assert artifact.kind is ArtifactKind.FIXTURE
        assert artifact.path == "database/factories/PostFactory.php"
        text = artifact.text_body
        assert "class PostFactory extends Factory" in text
        assert "use App\\Models\\Post;" in text
        assert "            'title' => $this->faker->words(3, true)," in text
        assert "            'author_id' => \\App\\Models\\User::factory()," in text
        assert "            'status' => $this->faker->randomElement(['draft', 'published'])," in text
        assert _is_balanced(text)

    def test_seeder_uses_configured_count(self, post_entity: EntityDefinition) -> None:
        compiler = ArtifactCompiler(GenerationConfig(seed_count=25))
        artifact = compiler.compile_seed(post_entity)
        assert artifact.kind is ArtifactKind.SEED
        assert artifact.path == "database/seeders/PostSeeder.php"
        assert "Post::factory()->count(25)->create();" in artifact.text_body


class TestEnums:
    def test_one_enum_per_field(self, compiler: ArtifactCompiler, post_entity: EntityDefinition) -> None:
        artifacts = compiler.compile_enums(post_entity)
        assert [a.name for a in artifacts] == ["PostStatusEnum"]
        text = artifacts[0].text_body
        assert artifacts[0].path == "app/Enums/PostStatusEnum.php"
        assert "namespace App\\Enums;" in text
        assert "enum PostStatusEnum: string" in text
        assert "    case Draft = 'draft';\n    case Published = 'published';" in text

    def test_values_round_trip_through_parser(self, compiler: ArtifactCompiler) -> None:
        entity = EntityDefinition(
            name="Ticket",
            fields={"state": {"kind": "enum", "values": ["open", "won't fix", "in progress"]}},
        )
        text = compiler.compile_enums(entity)[0].text_body
        assert parse_enum_values(text) == ["open", "won't fix", "in progress"]

    def test_colliding_case_names(self, compiler: ArtifactCompiler) -> None:
        entity = EntityDefinition(
            name="Ticket", fields={"state": {"kind": "enum", "values": ["in-progress", "in progress"]}}
        )
        with pytest.raises(InvalidEnumValue):
            compiler.compile_enums(entity)

    def test_duplicate_values(self, compiler: ArtifactCompiler) -> None:
        entity = EntityDefinition(name="Ticket", fields={"state": {"kind": "enum", "values": ["a", "a"]}})
        with pytest.raises(InvalidEnumValue):
            compiler.compile_enums(entity)

    def test_entity_without_enums(self, compiler: ArtifactCompiler, user_entity: EntityDefinition) -> None:
        assert compiler.compile_enums(user_entity) == []


# ===========================================================================
# Stubs
# ===========================================================================


class TestStubs:
    def test_render_stub_keeps_unknown_placeholders(self) -> None:
        assert render_stub("{{ a }}-{{b}}-{{ c }}", {"a": "1", "b": "2"}) == "1-2-{{ c }}"

    def test_override_directory_wins(self, tmp_path: pathlib.Path, user_entity: EntityDefinition) -> None:
        (tmp_path / STUB_MODEL).write_text("// custom {{ class }}\n", encoding="utf-8")
        compiler = ArtifactCompiler(GenerationConfig(stub_path=str(tmp_path)))
        assert compiler.compile_entity(user_entity).text_body == "// custom User\n"
        # stubs missing from the override directory fall back to the bundled ones
        assert "Seeder" in compiler.compile_seed(user_entity).text_body

    def test_missing_stub(self, tmp_path: pathlib.Path) -> None:
        compiler = ArtifactCompiler(GenerationConfig(), stub_dir=tmp_path)
        with pytest.raises(TemplateNotFound) as exc_info:
            compiler.load_stub(STUB_MODEL)
        assert exc_info.value.code == "TemplateNotFound"
