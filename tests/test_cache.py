from screentrans.cache import TranslationCache


def test_get_and_set_use_trimmed_text():
    cache = TranslationCache()
    cache.set("en", "pt", "  Hello ", "Olá")

    assert cache.get("en", "pt", "Hello") == "Olá"
    assert cache.get("en", "pt", "Hello   ") == "Olá"
    assert cache.contains("en", "pt", "Hello")
    assert len(cache) == 1


def test_language_pairs_are_independent():
    cache = TranslationCache()
    cache.set("en", "pt", "Hello", "Olá")

    assert cache.get("en", "es", "Hello") is None
    assert cache.get("pt", "en", "Hello") is None

    cache.set("en", "es", "Hello", "Hola")
    assert cache.get("en", "pt", "Hello") == "Olá"
    assert cache.get("en", "es", "Hello") == "Hola"
    assert len(cache) == 2


def test_clear_removes_everything():
    cache = TranslationCache()
    cache.set("en", "pt", "Hello", "Olá")
    cache.set("en", "pt", "World", "Mundo")

    cache.clear()

    assert len(cache) == 0
    assert cache.get("en", "pt", "Hello") is None
    # clearing an empty cache is fine
    cache.clear()
