# -*- coding: utf-8 -*-
#
import math

import numpy as np

from utils.MLogger import MLogger # noqa

logger = MLogger(__name__, level=1)


# 有効な値(nan, inf を 0 にする)
def get_effective_value(v):
    if math.isnan(v) or math.isinf(v):
        return 0
    return v


class MVector2D:

    def __init__(self, x=0.0, y=0.0):
        if isinstance(x, (MVector2D, MVector3D, MVector4D)):
            self.__data = np.array(x.data()[:2], dtype=np.float64)
        elif isinstance(x, (np.ndarray, list, tuple)):
            self.__data = np.array(x[:2], dtype=np.float64)
        else:
            self.__data = np.array([x, y], dtype=np.float64)

    def data(self):
        return self.__data

    def copy(self):
        return MVector2D(self.__data.copy())

    def x(self):
        return float(self.__data[0])

    def y(self):
        return float(self.__data[1])

    def setX(self, x):
        self.__data[0] = x

    def setY(self, y):
        self.__data[1] = y

    def length(self):
        return float(np.linalg.norm(self.__data))

    def __add__(self, other):
        return MVector2D(self.__data + _operand(other))

    def __sub__(self, other):
        return MVector2D(self.__data - _operand(other))

    def __mul__(self, other):
        return MVector2D(self.__data * _operand(other))

    def __truediv__(self, other):
        return MVector2D(self.__data / _operand(other))

    def __neg__(self):
        return MVector2D(-self.__data)

    def __str__(self):
        return "MVector2D({0}, {1})".format(self.x(), self.y())


class MVector3D:

    def __init__(self, x=0.0, y=0.0, z=0.0):
        if isinstance(x, (MVector3D, MVector4D)):
            self.__data = np.array(x.data()[:3], dtype=np.float64)
        elif isinstance(x, (np.ndarray, list, tuple)):
            self.__data = np.array(x[:3], dtype=np.float64)
        else:
            self.__data = np.array([x, y, z], dtype=np.float64)

    def data(self):
        return self.__data

    def copy(self):
        return MVector3D(self.__data.copy())

    def x(self):
        return float(self.__data[0])

    def y(self):
        return float(self.__data[1])

    def z(self):
        return float(self.__data[2])

    def setX(self, x):
        self.__data[0] = x

    def setY(self, y):
        self.__data[1] = y

    def setZ(self, z):
        self.__data[2] = z

    def length(self):
        return float(np.linalg.norm(self.__data))

    def lengthSquared(self):
        return float(np.dot(self.__data, self.__data))

    def normalized(self):
        length = self.length()
        if length == 0:
            return MVector3D()
        return MVector3D(self.__data / length)

    def normalize(self):
        length = self.length()
        if length != 0:
            self.__data /= length

    def distanceToPoint(self, v):
        return float(np.linalg.norm(self.__data - v.data()))

    def isNull(self):
        return bool(np.all(self.__data == 0))

    def to_log(self):
        return "x: {0}, y: {1} z: {2}".format(round(self.x(), 5), round(self.y(), 5), round(self.z(), 5))

    @classmethod
    def crossProduct(cls, v1, v2):
        return MVector3D(np.cross(v1.data(), v2.data()))

    @classmethod
    def dotProduct(cls, v1, v2):
        return float(np.dot(v1.data(), v2.data()))

    def __add__(self, other):
        return MVector3D(self.__data + _operand(other))

    def __sub__(self, other):
        return MVector3D(self.__data - _operand(other))

    def __mul__(self, other):
        return MVector3D(self.__data * _operand(other))

    def __truediv__(self, other):
        return MVector3D(self.__data / _operand(other))

    def __neg__(self):
        return MVector3D(-self.__data)

    def __str__(self):
        return "MVector3D({0}, {1}, {2})".format(self.x(), self.y(), self.z())


class MVector4D:

    def __init__(self, x=0.0, y=0.0, z=0.0, w=0.0):
        if isinstance(x, MVector4D):
            self.__data = np.array(x.data(), dtype=np.float64)
        elif isinstance(x, (np.ndarray, list, tuple)):
            self.__data = np.array(x[:4], dtype=np.float64)
        else:
            self.__data = np.array([x, y, z, w], dtype=np.float64)

    def data(self):
        return self.__data

    def copy(self):
        return MVector4D(self.__data.copy())

    def x(self):
        return float(self.__data[0])

    def y(self):
        return float(self.__data[1])

    def z(self):
        return float(self.__data[2])

    def w(self):
        return float(self.__data[3])

    def setW(self, w):
        self.__data[3] = w

    def __add__(self, other):
        return MVector4D(self.__data + _operand(other))

    def __sub__(self, other):
        return MVector4D(self.__data - _operand(other))

    def __mul__(self, other):
        return MVector4D(self.__data * _operand(other))

    def __str__(self):
        return "MVector4D({0}, {1}, {2}, {3})".format(self.x(), self.y(), self.z(), self.w())


class MQuaternion:

    def __init__(self, w=1.0, x=0.0, y=0.0, z=0.0):
        if isinstance(w, (np.ndarray, list, tuple)):
            self.__data = np.array(w[:4], dtype=np.float64)
        else:
            self.__data = np.array([w, x, y, z], dtype=np.float64)

    def data(self):
        return self.__data

    def scalar(self):
        return float(self.__data[0])

    def x(self):
        return float(self.__data[1])

    def y(self):
        return float(self.__data[2])

    def z(self):
        return float(self.__data[3])

    def normalized(self):
        length = float(np.linalg.norm(self.__data))
        if length == 0:
            return MQuaternion()
        return MQuaternion(self.__data / length)

    # 3x3回転行列
    def toMatrix3x3(self):
        w, x, y, z = self.normalized().data()
        return np.array(
            [
                [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
                [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
                [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
            ],
            dtype=np.float64,
        )

    # glTF の回転配列 (x, y, z, w)
    @classmethod
    def fromGltfRotation(cls, rotation):
        if not rotation or len(rotation) < 4:
            return MQuaternion()
        return MQuaternion(rotation[3], rotation[0], rotation[1], rotation[2]).normalized()

    # オイラー角(度)からクォータニオン
    @classmethod
    def fromEulerAngles(cls, pitch, yaw, roll):
        pitch = math.radians(pitch) * 0.5
        yaw = math.radians(yaw) * 0.5
        roll = math.radians(roll) * 0.5

        c1 = math.cos(yaw)
        s1 = math.sin(yaw)
        c2 = math.cos(roll)
        s2 = math.sin(roll)
        c3 = math.cos(pitch)
        s3 = math.sin(pitch)
        c1c2 = c1 * c2
        s1s2 = s1 * s2

        w = c1c2 * c3 + s1s2 * s3
        x = c1c2 * s3 + s1s2 * c3
        y = s1 * c2 * c3 - c1 * s2 * s3
        z = c1 * s2 * c3 - s1 * c2 * s3

        return MQuaternion(w, x, y, z)


class MMatrix4x4:

    def __init__(self, data=None):
        if data is None:
            self.__data = np.zeros((4, 4), dtype=np.float64)
        else:
            self.__data = np.array(data, dtype=np.float64).reshape(4, 4)

    def data(self):
        return self.__data

    def copy(self):
        return MMatrix4x4(self.__data.copy())

    def setToIdentity(self):
        self.__data = np.eye(4, dtype=np.float64)

    def translate(self, v: MVector3D):
        t = np.eye(4, dtype=np.float64)
        t[:3, 3] = v.data()
        self.__data = self.__data.dot(t)

    def rotate(self, q: MQuaternion):
        r = np.eye(4, dtype=np.float64)
        r[:3, :3] = q.toMatrix3x3()
        self.__data = self.__data.dot(r)

    def scale(self, v: MVector3D):
        s = np.eye(4, dtype=np.float64)
        s[0, 0], s[1, 1], s[2, 2] = v.data()
        self.__data = self.__data.dot(s)

    # glTF の列優先16要素から生成
    @classmethod
    def fromGltfMatrix(cls, values):
        return MMatrix4x4(np.array(values, dtype=np.float64).reshape(4, 4).T)

    def __mul__(self, other):
        if isinstance(other, MMatrix4x4):
            return MMatrix4x4(self.__data.dot(other.data()))
        elif isinstance(other, MVector3D):
            v = self.__data.dot(np.append(other.data(), 1))
            return MVector3D(v[:3])
        return MMatrix4x4(self.__data * other)

    def __str__(self):
        return "MMatrix4x4({0})".format(self.__data.tolist())


def _operand(other):
    if isinstance(other, (MVector2D, MVector3D, MVector4D)):
        return other.data()
    return other
