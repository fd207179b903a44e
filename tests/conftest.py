import pytest


SHARED_BLOCK = [
    "    total = load_initial(config)",
    "    total += compute_tax(order, total)",
    "    total -= apply_discount(customer, total)",
    "    if total < 0: total = 0",
    "    log.info('computed %s', total)",
    "    history.append(total)",
    "    total = round(total, 2)",
    "    audit.record('checkout', total)",
    "    cache[order.id] = total",
    "    return finalize(total)",
]

FILLER_A = [
    "import alpha_settings",
    "ALPHA_RETRY_LIMIT = 17",
    "def checkout_alpha(order, config, customer):",
    "    # alpha pipeline",
]

TRAILER_A = [
    "",
    "class AlphaRegistry(object):",
    "    entries = {'north': 1, 'south': 2}",
    "    name = 'alpha-registry'",
]

FILLER_B = [
    "from beta.tools import Printer, Scanner",
    "BETA_TIMEOUT_SECONDS = 3600.5",
    "async def checkout_beta(order, config, customer, *, strict=False):",
    "    \"\"\"Beta flavour of the checkout.\"\"\"",
]

TRAILER_B = [
    "",
    "def unrelated_helper(xs):",
    "    return sorted(set(xs), reverse=True)[:42]",
    "print(unrelated_helper([3, 1, 2]))",
]


def write_lines(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(path)


@pytest.fixture
def duplicated_corpus(tmp_path):
    """Two files sharing the same 10-line block among unrelated lines."""
    a = write_lines(tmp_path / "alpha.py", FILLER_A + SHARED_BLOCK + TRAILER_A)
    b = write_lines(tmp_path / "beta.py", FILLER_B + SHARED_BLOCK + TRAILER_B)
    return a, b


@pytest.fixture
def renamed_corpus(tmp_path):
    """Same as duplicated_corpus, but the second copy renames one identifier."""
    renamed = [line.replace("total", "amount") for line in SHARED_BLOCK]
    a = write_lines(tmp_path / "alpha.py", FILLER_A + SHARED_BLOCK + TRAILER_A)
    b = write_lines(tmp_path / "beta.py", FILLER_B + renamed + TRAILER_B)
    return a, b
