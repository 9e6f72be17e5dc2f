from weakcache.hashing import KeyHasher


def test_index_is_stable_per_hasher():
    hasher = KeyHasher()
    assert hasher.index("key") == hasher.index("key")
    assert hasher.index("key") != hasher.index("other")
    assert 0 <= hasher.index("key") < 2**64


def test_index_depends_on_seed():
    assert KeyHasher(b"a" * 16).index("key") == KeyHasher(b"a" * 16).index("key")
    assert KeyHasher(b"a" * 16).index("key") != KeyHasher(b"b" * 16).index("key")


def test_index_handles_unicode_and_empty_keys():
    hasher = KeyHasher()
    assert hasher.index("") != hasher.index("ключ")
