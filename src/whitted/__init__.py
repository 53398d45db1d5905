"""Taichi implementation of a Whitted-style ray tracer.

This package renders scenes of spheres, triangles, parallelograms, planes and
triangle meshes with:
- Ambient light and Blinn-Phong direct light from point lights
- Hard shadows from shadow rays
- Mirror reflection up to a bounce budget
- A Bounding Volume Hierarchy per mesh, with a brute-force fallback

Subpackages:
    core: Ray types, render settings and the Whitted integrator
    geometry: Shape primitives, bounding boxes and the BVH builder
    materials: Phong material model and material table
    scene: Object table, mesh arenas, lights, scene builder and OFF loader
    camera: Perspective and orthographic cameras
    preview: Image display and PNG export
"""

__version__ = "0.1.0"
