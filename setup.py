from setuptools import setup

package_name = 'sanding_planner'

setup(
    name='sanding-planner',
    version='0.1.0',
    packages=[
        package_name,
        'collision_check',
        'kinematics',
        'models',
        'models.robots',
        'models.robots.sander',
        'models.workpieces',
        'surface_paths',
    ],
    package_dir={'': 'src'},
    python_requires='>=3.10',
    install_requires=['setuptools', 'numpy', 'scipy', 'pin'],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=True,
    maintainer='root',
    description='Collision-aware trajectory optimization for sanding a cylindrical part',
    license='MIT',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [],
    },
)
