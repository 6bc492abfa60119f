"""Shared fixtures for doxygen-search tests."""

from pathlib import Path

import pytest

FUNCTIONS_1_JS = """var searchData=
[
  ['calcsinglesegmentjacobian_111',['calcSingleSegmentJacobian',['../dcontinuum__pose_8h.html#a28307bbe97bac0d8e3fdb0cea0755b78',1,'mmath::continuum::calcSingleSegmentJacobian(kfloat L, kfloat theta, kfloat delta, Eigen::Matrix&lt; kfloat, 3, 2 &gt; &amp;Jv, Eigen::Matrix&lt; kfloat, 3, 2 &gt; &amp;Jw)'],['../dcontinuum__pose_8h.html#a2ee2c1fbdc29b7511c7aefe2696b1bfd',1,'mmath::continuum::calcSingleSegmentJacobian(const ConfigSpc &amp;q, Eigen::Matrix&lt; kfloat, 3, 2 &gt; &amp;Jv, Eigen::Matrix&lt; kfloat, 3, 2 &gt; &amp;Jw)']]],
  ['calcsinglesegmentpose_112',['calcSingleSegmentPose',['../continuum__pose_8h.html#a0509470346cb9a50f72381fa6bb32b2f',1,'mmath::continuum::calcSingleSegmentPose(kfloat L, kfloat theta, kfloat delta, Pose &amp;pose)'],['../continuum__pose_8h.html#a9f7e1a001a38da007c9c9a0a65466c8b',1,'mmath::continuum::calcSingleSegmentPose(const ConfigSpc &amp;q)']]],
  ['cameraprojector_117',['CameraProjector',['../classmmath_1_1_camera_projector.html#a3556ba4466e81da5ee0d772f2a44d499',1,'mmath::CameraProjector']]],
  ['clear_118',['clear',['../classmmath_1_1continuum_1_1_config_spc.html#a192072dbbba37a1a42aead78ddb0d5eb',1,'mmath::continuum::ConfigSpc']]],
  ['createrotmatbyvecz_119',['createRotMatByVecZ',['../namespacemmath.html#a43ee0030be3d23d67cb545f9b17d1e42',1,'mmath']]],
  ['cvt2dto3d_120',['cvt2Dto3D',['../classmmath_1_1_camera_projector.html#ad9480b2eb6384b6f0403b45b37543d45',1,'mmath::CameraProjector::cvt2Dto3D(kfloat u, kfloat v, kfloat depth) const'],['../classmmath_1_1_camera_projector.html#ab14ff5f12064ecfef242795150e7f70c',1,'mmath::CameraProjector::cvt2Dto3D(kfloat u, kfloat v, kfloat depth, cam::ID id) const']]],
  ['cvt3dto2d_121',['cvt3Dto2D',['../classmmath_1_1_camera_projector.html#a373e834850183bc31aba88fac22df33e',1,'mmath::CameraProjector::cvt3Dto2D(kfloat x, kfloat y, kfloat z) const']]]
];
"""

CLASSES_0_JS = """var searchData=
[
  ['cameraprojector_0',['CameraProjector',['../classmmath_1_1_camera_projector.html',1,'mmath']]],
  ['configspc_1',['ConfigSpc',['../classmmath_1_1continuum_1_1_config_spc.html',1,'mmath::continuum']]]
];
"""

SEARCHDATA_JS = """var indexSectionsWithContent =
{
  0: "c",
  1: "cp"
};

var indexSectionNames =
{
  0: "classes",
  1: "functions"
};

var indexSectionLabels =
{
  0: "Classes",
  1: "Functions"
};

"""


@pytest.fixture
def search_dir(tmp_path: Path) -> Path:
    """Create a Doxygen ``html/search`` directory with sample fragments.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        Path to the search directory.
    """
    path = tmp_path / "html" / "search"
    path.mkdir(parents=True)
    (path / "functions_1.js").write_text(FUNCTIONS_1_JS, encoding="utf-8")
    (path / "classes_0.js").write_text(CLASSES_0_JS, encoding="utf-8")
    (path / "searchdata.js").write_text(SEARCHDATA_JS, encoding="utf-8")
    (path / "search.js").write_text("function SearchBox(name) { this.name = name; }\n", encoding="utf-8")
    return path


@pytest.fixture
def functions_source() -> str:
    """Return the source of a ``functions_1.js`` fragment.

    Returns:
        Fragment source text.
    """
    return FUNCTIONS_1_JS


@pytest.fixture
def searchdata_source() -> str:
    """Return the source of a ``searchdata.js`` file.

    Returns:
        searchdata.js source text.
    """
    return SEARCHDATA_JS
