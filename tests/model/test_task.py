"""Tests for docspine.model.task and docspine.model.tuning modules."""

import json

import pytest

from docspine.core.errors import ParseError
from docspine.model.collection import Collection
from docspine.model.task import Label, Task, TaskScope
from docspine.model.tuning import RegexRule, Rule, SubstringRule, TuningRules

CATS = [
    "American Short Hair",
    "Siamese",
    "Persian",
    "Burmese",
    "Siberian",
    "Balinese",
    "Russian Blue",
    "Maine Coon",
]


def rule_feature(label_rules):
    return {
        "uuid": "00000000-0000-0000-0000-000000000001",
        "name": "ClarabridgeRule",
        "parameters": {"label_rules": label_rules},
        "is_active": True,
    }


def blank_label_rules(**overrides):
    rules = {name: [["", "", "", ""]] for name in CATS}
    rules.update(overrides)
    return json.dumps(rules)


def task_json(name="ClassifyCats", **fields):
    body = {"uuid": "00000000-0000-0000-0000-000000000000", "name": name, "scope": "document"}
    body.update(fields)
    return {"task": body}


@pytest.fixture
def collection():
    return Collection.instance(None, "C")


class TestTaskBasics:
    """Identity, scope and labels."""

    def test_endpoint(self, collection):
        """Task endpoints nest under the collection."""
        task = collection.task("Classify Cats")
        assert task.endpoint == "/C/Classify%20Cats"
        assert task.collection is collection

    def test_canonical(self, collection):
        """The same name yields the same task."""
        task = collection.task("t")
        assert collection.task("t") is task

    def test_from_json_preloads(self, collection):
        """from_json installs the snapshot."""
        task = Task.from_json(collection, task_json(scope="span", labels=[{"name": "A"}]))
        assert task.is_loaded
        assert task.scope is TaskScope.SPAN
        assert task.labels() == [Label(task, "A")]

    def test_from_json_requires_name(self, collection):
        with pytest.raises(ParseError):
            Task.from_json(collection, {"task": {"scope": "document"}})

    def test_label_value_object(self, collection):
        """Labels are equal by task and name."""
        task = collection.task("t")
        assert task.label("x") == Label(task, "x")
        assert task.label("x") != collection.task("u").label("x")
        assert len({task.label("x"), task.label("x")}) == 1

    def test_null_config(self, collection):
        """A task without config has no rules and no sub-tasks."""
        task = Task.from_json(collection, task_json(name="task", labels=[]))
        assert task.rules() == {}
        assert task.subtasks() == {}


class TestTuningRules:
    """Rules parsed from config.tuning."""

    def test_load_rules(self, collection):
        """Plain phrases are substrings, slash-wrapped phrases are regexes."""
        config = {"tuning": {"Label": {"substring": 0.8, "/regex/": 0.2}}}
        task = Task.from_json(collection, task_json(name="task", config=config))
        assert task.label("Label") in task.rules()
        rules = task.label("Label").rules()
        assert len(rules) == 2
        assert isinstance(rules[0], SubstringRule)
        assert isinstance(rules[1], RegexRule)

    def test_rule_weights(self):
        """Weights classify the rule."""
        assert Rule.parse(None, "x", 0.0).is_blacklist
        assert Rule.parse(None, "x", 1).is_whitelist
        assert Rule.parse(None, "x", 0.8).is_predictive
        assert Rule.parse(None, "x", 0.2).is_anti_predictive

    def test_matching(self):
        """Substring and regex rules match text."""
        assert Rule.parse(None, "short", 0.5).matches("a short hair cat")
        regex = Rule.parse(None, "/(?i)short.?hair/", 0.9)
        assert regex.matches("Domestic ShortHair")
        assert not regex.matches("long hair")

    def test_equality(self):
        """Rules are equal by phrase and weight."""
        assert Rule.parse(None, "x", 0.5) == Rule.parse(None, "x", 0.5)
        assert Rule.parse(None, "x", 0.5) != Rule.parse(None, "x", 0.6)

    @pytest.mark.parametrize("weight", ["high", None, True])
    def test_invalid_weight(self, weight):
        with pytest.raises(ParseError):
            Rule.parse(None, "x", weight)

    def test_copy_is_independent(self, collection):
        task = collection.task("t")
        rules = TuningRules({task.label("a"): [Rule.parse(None, "x", 0.5)]})
        copied = rules.copy()
        copied[task.label("a")].append(Rule.parse(None, "y", 0.5))
        assert len(rules[task.label("a")]) == 1


class TestSubtasks:
    """config.sub_tasks."""

    def test_load_ontology(self, collection):
        """Each label maps to the tasks it triggers."""
        config = {"sub_tasks": {"label": ["sub1", "sub2"]}}
        task = Task.from_json(collection, task_json(name="task", labels=[{"name": "label"}], config=config))
        subtasks = task.subtasks()
        assert set(subtasks) == {task.label("label")}
        assert subtasks[task.label("label")] == {collection.task("sub1"), collection.task("sub2")}


class TestTrivialAccept:
    """Tasks whose every prediction is a certain accept."""

    def test_blank_rule_features(self, collection):
        """Only blank rule features and no tuning: trivial."""
        task = Task.from_json(
            collection,
            task_json(labels=[{"name": n} for n in CATS], features=[rule_feature(blank_label_rules())]),
        )
        assert task.is_trivial_accept()

    def test_tuning_rules_not_trivial(self, collection):
        """Tuning rules make a task non-trivial."""
        config = {"tuning": {"Persian": {"/(?i)white/": 0.1}, "Burmese": {}}}
        task = Task.from_json(
            collection,
            task_json(config=config, features=[rule_feature(blank_label_rules())]),
        )
        assert not task.is_trivial_accept()

    def test_no_features_not_trivial(self, collection):
        task = Task.from_json(collection, task_json(features=[]))
        assert not task.is_trivial_accept()

    def test_non_blank_rule_not_trivial(self, collection):
        """A single non-blank label rule makes the task non-trivial."""
        rules = blank_label_rules(Persian=[["", "", "white", ""]])
        task = Task.from_json(collection, task_json(features=[rule_feature(rules)]))
        assert not task.is_trivial_accept()

    def test_other_feature_not_trivial(self, collection):
        features = [rule_feature(""), {"name": "NgramFeature", "parameters": {}}]
        task = Task.from_json(collection, task_json(features=features))
        assert not task.is_trivial_accept()

    def test_blank_rules_as_object(self, collection):
        """label_rules may arrive decoded."""
        features = [rule_feature({"A": [["", " "]]}), rule_feature(None)]
        task = Task.from_json(collection, task_json(features=features))
        assert task.is_trivial_accept()
