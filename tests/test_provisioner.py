"""Tests for the model conversion python environment"""

import subprocess
import pytest
from unittest.mock import Mock, patch, call
from ortbuild import (
    InterpreterEnvironment,
    EnvironmentProvisioner,
    UvProvisioner,
    VenvProvisioner,
    ProvisioningError,
    REQUIRED_PACKAGES,
    logging,
)


@pytest.fixture
def env(tmp_path):
    """Create an InterpreterEnvironment in a temporary workspace"""
    env = InterpreterEnvironment(tmp_path / ".venv")
    env.log = Mock(spec=logging.Logger)
    return env


@pytest.fixture
def ready_env(env):
    """An environment whose interpreter exists and imports succeed"""
    env.python.parent.mkdir(parents=True)
    env.python.write_text("")
    return env


def make_provisioner(available=True, name="mock"):
    provisioner = Mock(spec=EnvironmentProvisioner)
    provisioner.name = name
    provisioner.is_available.return_value = available
    return provisioner


class TestInterpreterEnvironment:
    """Tests for readiness detection"""

    def test_default_packages(self, env):
        assert env.packages == REQUIRED_PACKAGES == ("onnxruntime", "onnx")

    def test_not_ready_without_interpreter(self, env):
        with patch.object(env, "probe") as mock_probe:
            assert not env.is_ready()
            mock_probe.assert_not_called()

    def test_ready_when_imports_succeed(self, ready_env):
        with patch.object(ready_env, "probe", return_value=True) as mock_probe:
            assert ready_env.is_ready()
            mock_probe.assert_called_once_with(
                [str(ready_env.python), "-c", "import onnxruntime; import onnx"]
            )

    def test_not_ready_when_imports_fail(self, ready_env):
        with patch.object(ready_env, "probe", return_value=False):
            assert not ready_env.is_ready()


class TestEnsureReady:
    """Tests for InterpreterEnvironment.ensure_ready()"""

    def test_ready_environment_is_left_alone(self, ready_env):
        provisioner = make_provisioner()
        with patch.object(ready_env, "probe", return_value=True):
            assert ready_env.ensure_ready([provisioner]) is ready_env
            assert ready_env.ensure_ready([provisioner]) is ready_env
        provisioner.is_available.assert_not_called()
        provisioner.provision.assert_not_called()

    def test_first_available_provisioner_wins(self, env):
        first = make_provisioner(available=False, name="uv")
        second = make_provisioner(available=True, name="venv")
        third = make_provisioner(available=True, name="other")
        env.ensure_ready([first, second, third])
        first.provision.assert_not_called()
        second.provision.assert_called_once_with(env)
        third.is_available.assert_not_called()

    def test_no_provisioner_available(self, env):
        provisioners = [make_provisioner(False, "uv"), make_provisioner(False, "venv")]
        with pytest.raises(ProvisioningError, match="uv, venv"):
            env.ensure_ready(provisioners)

    def test_default_provisioner_order(self, env):
        with patch("shutil.which", return_value=None):
            with pytest.raises(ProvisioningError, match="tried: uv, venv"):
                env.ensure_ready()

    def test_provisioning_failure_propagates(self, env):
        provisioner = make_provisioner()
        provisioner.provision.side_effect = ProvisioningError("pip failed")
        with pytest.raises(ProvisioningError):
            env.ensure_ready([provisioner])


class TestUvProvisioner:
    """Tests for the uv provisioner"""

    @pytest.fixture
    def uv(self):
        uv = UvProvisioner()
        uv.log = Mock(spec=logging.Logger)
        return uv

    def test_is_available(self, uv):
        with patch("shutil.which", return_value="/usr/bin/uv"):
            assert uv.is_available()
        with patch("shutil.which", return_value=None):
            assert not uv.is_available()

    def test_provision_creates_and_installs(self, uv, env):
        with patch.object(uv, "cmd") as mock_cmd:
            uv.provision(env)
        assert mock_cmd.call_args_list == [
            call(["uv", "venv", str(env.path)]),
            call(
                ["uv", "pip", "install", "--python", str(env.python),
                 "onnxruntime", "onnx"]
            ),
        ]

    def test_provision_skips_create_if_dir_exists(self, uv, env):
        env.path.mkdir()
        with patch.object(uv, "cmd") as mock_cmd:
            uv.provision(env)
        mock_cmd.assert_called_once()
        assert mock_cmd.call_args.args[0][:3] == ["uv", "pip", "install"]

    def test_install_failure(self, uv, env):
        with patch("subprocess.check_call") as mock_call:
            mock_call.side_effect = subprocess.CalledProcessError(1, "uv")
            with pytest.raises(ProvisioningError, match="uv failed"):
                uv.provision(env)


class TestVenvProvisioner:
    """Tests for the python -m venv fallback"""

    @pytest.fixture
    def venv(self):
        venv = VenvProvisioner()
        venv.log = Mock(spec=logging.Logger)
        return venv

    def test_prefers_python3(self, venv):
        found = {"python3": "/usr/bin/python3", "python": "/usr/bin/python"}
        with patch("shutil.which", side_effect=found.get):
            assert venv.is_available()
        assert venv.interpreter == "/usr/bin/python3"

    def test_falls_back_to_python(self, venv):
        found = {"python": "/usr/bin/python"}
        with patch("shutil.which", side_effect=found.get):
            assert venv.is_available()
        assert venv.interpreter == "/usr/bin/python"

    def test_unavailable_without_interpreter(self, venv):
        with patch("shutil.which", return_value=None):
            assert not venv.is_available()

    def test_provision_creates_and_installs(self, venv, env):
        with patch("shutil.which", return_value="/usr/bin/python3"):
            assert venv.is_available()
        with patch.object(venv, "cmd") as mock_cmd:
            venv.provision(env)
        assert mock_cmd.call_args_list == [
            call(["/usr/bin/python3", "-m", "venv", str(env.path)]),
            call([str(env.pip), "install", "--upgrade", "pip"]),
            call([str(env.pip), "install", "onnxruntime", "onnx"]),
        ]

    def test_create_failure(self, venv, env):
        venv.interpreter = "/usr/bin/python3"
        with patch("subprocess.check_call") as mock_call:
            mock_call.side_effect = subprocess.CalledProcessError(1, "python3")
            with pytest.raises(ProvisioningError, match="venv failed"):
                venv.provision(env)
