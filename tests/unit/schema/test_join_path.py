"""Tests for foreign-key join planning."""

from collections import Counter

from sqlbridge.models.schema import Table
from sqlbridge.schema.join_path import JoinPathFinder
from sqlbridge.schema.registry import SchemaRegistry


def _tables(schema, *names):
    return [schema.get_table(name) for name in names]


def _touched(plan):
    names = set()
    for edge in plan.joins:
        names.add(edge.from_table.table_name)
        names.add(edge.to_table.table_name)
    return names


class TestBuildGraph:
    """Test foreign-key graph construction."""

    def test_one_node_per_table(self, loaded_registry, hockey_schema):
        graph = JoinPathFinder(loaded_registry).build_graph(hockey_schema)
        assert graph.number_of_nodes() == len(hockey_schema.tables)

    def test_parallel_foreign_keys_are_separate_edges(self, loaded_registry, hockey_schema):
        graph = JoinPathFinder(loaded_registry).build_graph(hockey_schema)

        edges = graph.get_edge_data("public.competitionfixture", "public.competitionteam")

        assert set(edges) == {"fk_fixture_hometeam", "fk_fixture_awayteam"}

    def test_edges_point_from_referencing_table(self, loaded_registry, hockey_schema):
        graph = JoinPathFinder(loaded_registry).build_graph(hockey_schema)

        assert graph.has_edge("public.player", "public.club")
        assert not graph.has_edge("public.club", "public.player")

    def test_bidirectional_adds_reverse_edges(self, loaded_registry, hockey_schema):
        graph = JoinPathFinder(loaded_registry, bidirectional=True).build_graph(hockey_schema)

        assert graph.has_edge("public.club", "public.player")
        reverse = graph.get_edge_data("public.club", "public.player")["fk_player_club"]["join"]
        assert reverse.is_reversed


class TestFindJoinPlan:
    """Test join plan search."""

    def test_single_table_has_no_joins(self, loaded_registry, hockey_schema):
        plan = JoinPathFinder(loaded_registry).find_join_plan(_tables(hockey_schema, "Club"))

        assert [t.table_name for t in plan.tables] == ["Club"]
        assert plan.joins == []

    def test_empty_selection(self, loaded_registry):
        plan = JoinPathFinder(loaded_registry).find_join_plan([])
        assert plan.tables == [] and plan.joins == []

    def test_no_schema_loaded(self, memory_store, hockey_schema):
        finder = JoinPathFinder(SchemaRegistry(memory_store))

        plan = finder.find_join_plan(_tables(hockey_schema, "Player", "Club"))

        assert plan.joins == []

    def test_direct_foreign_key(self, loaded_registry, hockey_schema):
        plan = JoinPathFinder(loaded_registry).find_join_plan(
            _tables(hockey_schema, "Player", "Club")
        )

        assert len(plan.joins) == 1
        assert plan.joins[0].foreign_key.name == "FK_Player_Club"
        assert plan.on_clauses() == ["t0.ClubId = t1.Id"]

    def test_multi_hop_path_in_walk_back_order(self, loaded_registry, hockey_schema):
        plan = JoinPathFinder(loaded_registry).find_join_plan(
            _tables(hockey_schema, "CompetitionFixture", "Club")
        )

        assert [e.foreign_key.name for e in plan.joins] == ["FK_Team_Club", "FK_Fixture_HomeTeam"]
        assert plan.aliases() == {
            "public.competitionfixture": "t0",
            "public.club": "t1",
            "public.competitionteam": "t2",
        }
        assert plan.on_clauses() == ["t2.ClubId = t1.Id", "t0.HomeTeamId = t2.Id"]

    def test_joins_connect_all_reachable_tables(self, loaded_registry, hockey_schema):
        selected = _tables(hockey_schema, "CompetitionFixture", "Club", "Competition")

        plan = JoinPathFinder(loaded_registry).find_join_plan(selected)

        assert {"CompetitionFixture", "Club", "Competition"} <= _touched(plan)

    def test_each_joined_table_attached_by_exactly_one_edge(self, loaded_registry, hockey_schema):
        selected = _tables(hockey_schema, "CompetitionFixture", "Club", "Competition")

        plan = JoinPathFinder(loaded_registry).find_join_plan(selected)

        counts = Counter(e.to_table.full_name for e in plan.joins)
        assert counts == {
            "public.CompetitionTeam": 1,
            "public.Club": 1,
            "public.CompetitionSeason": 1,
            "public.Competition": 1,
        }
        assert "public.CompetitionFixture" not in counts

    def test_join_steps_attach_hops_first(self, loaded_registry, hockey_schema):
        selected = _tables(hockey_schema, "CompetitionFixture", "Club", "Competition")

        steps = JoinPathFinder(loaded_registry).find_join_plan(selected).join_steps()

        assert [(s.table.table_name, s.alias, s.condition) for s in steps] == [
            ("CompetitionTeam", "t3", "t0.HomeTeamId = t3.Id"),
            ("Club", "t1", "t3.ClubId = t1.Id"),
            ("CompetitionSeason", "t4", "t3.CompetitionSeasonId = t4.Id"),
            ("Competition", "t2", "t4.CompetitionId = t2.Id"),
        ]

    def test_join_steps_for_reversed_path(self, loaded_registry, hockey_schema):
        finder = JoinPathFinder(loaded_registry, bidirectional=True)

        plan = finder.find_join_plan(_tables(hockey_schema, "Club", "CompetitionFixture"))

        assert [(s.table.table_name, s.alias, s.condition) for s in plan.join_steps()] == [
            ("CompetitionTeam", "t2", "t2.ClubId = t0.Id"),
            ("CompetitionFixture", "t1", "t1.HomeTeamId = t2.Id"),
        ]

    def test_shared_edges_are_deduplicated(self, loaded_registry, hockey_schema):
        plan = JoinPathFinder(loaded_registry).find_join_plan(
            _tables(hockey_schema, "CompetitionFixture", "Club", "CompetitionTeam")
        )

        identities = [e.identity for e in plan.joins]
        assert len(identities) == len(set(identities)) == 2

    def test_unreachable_table_is_skipped(self, loaded_registry, hockey_schema):
        plan = JoinPathFinder(loaded_registry).find_join_plan(
            _tables(hockey_schema, "Player", "Location")
        )

        assert [t.table_name for t in plan.tables] == ["Player", "Location"]
        assert plan.joins == []

    def test_referenced_root_cannot_reach_referencing_table(self, loaded_registry, hockey_schema):
        plan = JoinPathFinder(loaded_registry).find_join_plan(
            _tables(hockey_schema, "Club", "Player")
        )

        assert plan.joins == []

    def test_bidirectional_reaches_referencing_table(self, loaded_registry, hockey_schema):
        finder = JoinPathFinder(loaded_registry, bidirectional=True)

        plan = finder.find_join_plan(_tables(hockey_schema, "Club", "CompetitionFixture"))

        assert [e.foreign_key.name for e in plan.joins] == ["FK_Fixture_HomeTeam", "FK_Team_Club"]
        assert all(e.is_reversed for e in plan.joins)
        assert plan.on_clauses() == ["t1.HomeTeamId = t2.Id", "t2.ClubId = t0.Id"]

    def test_unknown_root_has_no_joins(self, loaded_registry, hockey_schema):
        stranger = Table(schema_name="other", table_name="Stranger")

        plan = JoinPathFinder(loaded_registry).find_join_plan(
            [stranger, hockey_schema.get_table("Club")]
        )

        assert plan.joins == []

    def test_duplicate_root_is_ignored(self, loaded_registry, hockey_schema):
        club = hockey_schema.get_table("Club")

        plan = JoinPathFinder(loaded_registry).find_join_plan([club, club])

        assert plan.joins == []
