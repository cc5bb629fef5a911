"""
Unit tests for tag-based classification.
"""

import pytest

from nfse_splitter.config import ClassificationConfig
from nfse_splitter.exceptions import ConfigurationError
from nfse_splitter.models import Category
from nfse_splitter.parsers import (
    RegexTagLookup,
    TagClassifier,
    XmlTagLookup,
    classify,
    create_default_lookup,
    match_value,
)


@pytest.mark.unit
class TestClassifyDefaults:
    """ABRASF defaults: IssRetido, 1 = tomador, 2 = prestador."""

    def test_value_1_is_tomador(self, note):
        assert classify(note(value="1"), ClassificationConfig()) == Category.TOMADOR

    def test_value_2_is_prestador(self, note):
        assert classify(note(value="2"), ClassificationConfig()) == Category.PRESTADOR

    def test_other_value_is_sem_categoria(self, note):
        assert classify(note(value="3"), ClassificationConfig()) == Category.SEM_CATEGORIA

    def test_absent_tag_is_sem_categoria(self, note):
        assert classify(note(value=None), ClassificationConfig()) == Category.SEM_CATEGORIA

    def test_empty_value_is_sem_categoria(self, note):
        assert classify(note(value=""), ClassificationConfig()) == Category.SEM_CATEGORIA

    def test_exact_string_match_only(self, note):
        """'01' must not be treated as 1."""
        assert classify(note(value="01"), ClassificationConfig()) == Category.SEM_CATEGORIA
        assert classify(note(value="1.0"), ClassificationConfig()) == Category.SEM_CATEGORIA

    def test_value_is_trimmed(self, note):
        assert classify(note(value="  1\n"), ClassificationConfig()) == Category.TOMADOR

    def test_tag_case_insensitive(self, note):
        assert classify(note(value="2", tag="ISSRETIDO"), ClassificationConfig()) == Category.PRESTADOR

    def test_first_occurrence_wins(self):
        text = "<Nfse><IssRetido>2</IssRetido><IssRetido>1</IssRetido></Nfse>"

        assert classify(text, ClassificationConfig()) == Category.PRESTADOR

    def test_deterministic(self, note):
        """Same (content, config) always gives the same category."""
        config = ClassificationConfig()
        fragment = note(value="2")

        assert {classify(fragment, config) for _ in range(5)} == {Category.PRESTADOR}


@pytest.mark.unit
class TestClassifyCustomConfig:
    """Classification with a non-default rule."""

    def test_custom_tag_and_values(self, note):
        config = ClassificationConfig(
            tag_name="tipoRecolhimento",
            tomador_value="Tomador",
            prestador_value="Prestador"
        )

        assert classify(note(value="Tomador", tag="tipoRecolhimento"), config) == Category.TOMADOR
        assert classify(note(value="Prestador", tag="tipoRecolhimento"), config) == Category.PRESTADOR

    def test_value_comparison_is_case_sensitive(self, note):
        config = ClassificationConfig(
            tag_name="tipoRecolhimento",
            tomador_value="Tomador",
            prestador_value="Prestador"
        )

        assert classify(note(value="tomador", tag="tipoRecolhimento"), config) == Category.SEM_CATEGORIA

    def test_default_tag_ignored_when_custom_tag_set(self, note):
        config = ClassificationConfig(tag_name="OutraTag")

        assert classify(note(value="1"), config) == Category.SEM_CATEGORIA

    def test_tomador_checked_before_prestador(self, note):
        """Same value for both sides resolves to tomador."""
        config = ClassificationConfig(tomador_value="1", prestador_value="1")

        assert classify(note(value="1"), config) == Category.TOMADOR

    def test_configured_values_not_trimmed(self, note):
        config = ClassificationConfig(tomador_value=" 1 ")

        assert classify(note(value="1"), config) == Category.SEM_CATEGORIA


@pytest.mark.unit
class TestClassifyInvalidConfig:
    """An unusable tag name is a configuration error, not a category."""

    def test_empty_tag_raises(self, note):
        with pytest.raises(ConfigurationError):
            classify(note(), ClassificationConfig(tag_name=""))

    def test_blank_tag_raises(self, note):
        with pytest.raises(ConfigurationError):
            classify(note(), ClassificationConfig(tag_name="   "))

    def test_markup_in_tag_raises(self, note):
        with pytest.raises(ConfigurationError):
            classify(note(), ClassificationConfig(tag_name="<IssRetido>"))

    def test_classifier_init_validates(self):
        with pytest.raises(ConfigurationError):
            TagClassifier(ClassificationConfig(tag_name=""))

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            TagClassifier(ClassificationConfig(tag_name=""))


@pytest.mark.unit
class TestMatchValue:
    """Test mapping of a looked-up value to a category."""

    def test_none_is_sem_categoria(self):
        assert match_value(None, ClassificationConfig()) == Category.SEM_CATEGORIA

    @pytest.mark.parametrize("value,expected", [
        ("1", Category.TOMADOR),
        ("2", Category.PRESTADOR),
        (" 2 ", Category.PRESTADOR),
        ("3", Category.SEM_CATEGORIA),
        ("", Category.SEM_CATEGORIA),
    ])
    def test_values(self, value, expected):
        assert match_value(value, ClassificationConfig()) == expected


@pytest.mark.unit
class TestTagClassifier:
    """Test the bound classifier used by the pipelines."""

    def test_uses_bound_config(self, note):
        classifier = TagClassifier(ClassificationConfig(tomador_value="2", prestador_value="1"))

        assert classifier.classify(note(value="2")) == Category.TOMADOR
        assert classifier.classify(note(value="1")) == Category.PRESTADOR

    def test_with_xml_lookup(self, note):
        classifier = TagClassifier(ClassificationConfig(), XmlTagLookup())

        assert classifier.classify(note(value="1")) == Category.TOMADOR
        assert classifier.classify(note(value=None)) == Category.SEM_CATEGORIA

    def test_default_lookup_is_regex(self):
        classifier = TagClassifier(ClassificationConfig())

        assert isinstance(classifier.lookup, RegexTagLookup)

    def test_default_lookup_not_shared_between_classifiers(self):
        first = TagClassifier(ClassificationConfig())
        second = TagClassifier(ClassificationConfig())

        assert first.lookup is not second.lookup

    def test_self_closing_tag_does_not_classify(self):
        """<IssRetido/> carries no value; the later real element decides."""
        text = "<Nfse><IssRetido/><Outro>x</Outro><IssRetido>2</IssRetido></Nfse>"

        assert TagClassifier(ClassificationConfig()).classify(text) == Category.PRESTADOR


@pytest.mark.unit
class TestCreateDefaultLookup:
    """Test the lookup factory."""

    def test_returns_regex_lookup(self):
        assert isinstance(create_default_lookup(), RegexTagLookup)

    def test_new_instance_per_call(self):
        assert create_default_lookup() is not create_default_lookup()
