"""Tests for tag filtering."""

from gce_prometheus_discovery.discovery.models import Instance
from gce_prometheus_discovery.discovery.tag_filter import TagFilter, matches


def _inst(tags, name="vm1") -> Instance:
    return Instance(
        name=name,
        zone="zones/us-central1-b",
        machine_type="machineTypes/g1-small",
        tags=frozenset(tags),
        network_ips=("10.0.0.1",),
    )


class TestMatches:
    def test_exact_tag_set_matches(self):
        assert matches(_inst({"zookeeper"}), {"zookeeper"})

    def test_extra_instance_tags_allowed(self):
        assert matches(_inst({"zookeeper", "prod"}), {"zookeeper"})

    def test_all_required_tags_needed(self):
        assert not matches(_inst({"zookeeper"}), {"zookeeper", "prod"})

    def test_case_sensitive(self):
        assert not matches(_inst({"Zookeeper"}), {"zookeeper"})

    def test_untagged_instance_never_matches(self):
        assert not matches(_inst(set()), {"zookeeper"})

    def test_adding_required_tags_never_grows_the_match_set(self):
        instances = [
            _inst({"a"}), _inst({"a", "b"}), _inst({"a", "b", "c"}), _inst({"b"}), _inst(set()),
        ]
        previous = None
        for required in ({"a"}, {"a", "b"}, {"a", "b", "c"}):
            current = {id(i) for i in instances if matches(i, required)}
            if previous is not None:
                assert current <= previous
            previous = current


class TestTagFilter:
    def test_keeps_matching_in_order(self):
        first = _inst({"web", "prod"}, name="a")
        second = _inst({"web"}, name="b")
        skipped = _inst({"db"}, name="c")
        result = TagFilter({"web"}).apply([first, skipped, second])
        assert result == [first, second]

    def test_empty_input(self):
        assert TagFilter({"web"}).apply([]) == []
