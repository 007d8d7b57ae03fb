import importlib.util
import itertools
import textwrap
import warnings

import hypothesis
import pytest

from tests.utils import working_directory

############
# PATCHING #
############


# disable hypothesis deadline globally
hypothesis.settings.register_profile("ci", deadline=None)
hypothesis.settings.load_profile("ci")


def pytest_configure(config):
    config.addinivalue_line("markers", "fuzzing: hypothesis driven property tests")


_module_ids = itertools.count()


@pytest.fixture
def chdir_tmp_path(tmp_path):
    with working_directory(tmp_path):
        yield


@pytest.fixture
def make_file(tmp_path):
    # writes file_contents to file_name, creating it in the
    # tmp_path directory. returns final path.
    def fn(file_name, file_contents):
        path = tmp_path / file_name
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            f.write(file_contents)

        return path

    return fn


@pytest.fixture
def load_module(make_file):
    # writes source_code to a fresh module file and imports it, so that
    # the functions it defines have retrievable source
    def fn(source_code):
        module_name = f"safemath_test_module_{next(_module_ids)}"
        path = make_file(f"{module_name}.py", textwrap.dedent(source_code))
        spec = importlib.util.spec_from_file_location(module_name, path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    return fn


@pytest.fixture
def get_function(load_module):
    def fn(source_code, name="foo"):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            module = load_module(source_code)
        return getattr(module, name)

    return fn
