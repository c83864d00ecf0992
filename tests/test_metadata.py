"""
Test 2: Metadata store (metadata.py)
"""

from nidus.metadata import (
    define_metadata,
    get_metadata,
    get_own_metadata,
    has_metadata,
    has_own_metadata,
    metadata_keys,
)


class TestClassMetadata:

    def test_define_and_get(self):
        class Target:
            pass

        define_metadata("k", 1, Target)
        assert get_metadata("k", Target) == 1
        assert get_own_metadata("k", Target) == 1
        assert has_metadata("k", Target)
        assert has_own_metadata("k", Target)

    def test_missing_key_default(self):
        class Target:
            pass

        assert get_metadata("missing", Target) is None
        assert get_metadata("missing", Target, []) == []
        assert not has_metadata("missing", Target)

    def test_inherited_lookup(self):
        class Base:
            pass

        class Child(Base):
            pass

        define_metadata("k", "base", Base)
        assert get_metadata("k", Child) == "base"
        assert get_own_metadata("k", Child) is None
        assert not has_own_metadata("k", Child)

    def test_subclass_does_not_mutate_parent(self):
        class Base:
            pass

        class Child(Base):
            pass

        define_metadata("k", "base", Base)
        define_metadata("k", "child", Child)
        assert get_metadata("k", Base) == "base"
        assert get_metadata("k", Child) == "child"

    def test_metadata_keys_own_first(self):
        class Base:
            pass

        class Child(Base):
            pass

        define_metadata("a", 1, Base)
        define_metadata("b", 2, Child)
        assert metadata_keys(Child) == ["b", "a"]


class TestInstanceMetadata:

    def test_instance_falls_back_to_class(self):
        class Target:
            pass

        define_metadata("k", "cls", Target)
        obj = Target()
        assert get_metadata("k", obj) == "cls"

        define_metadata("k", "obj", obj)
        assert get_metadata("k", obj) == "obj"
        assert get_metadata("k", Target) == "cls"
